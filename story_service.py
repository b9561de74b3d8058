"""
Orchestration-side memoization over ContextCache.

The cache is a pure storage layer; this service owns the miss path: call the
injected generator, store the result under the same context, return it.
"""

import logging
import time
from typing import Callable, List, Sequence

from story_context import StoryContext, describe
from utils.cache import ContextCache

logger = logging.getLogger(__name__)

SegmentGenerator = Callable[[StoryContext], str]
ChoiceGenerator = Callable[[StoryContext], Sequence[str]]


class CachedStoryService:
    """
    Serves story segments and choices from a ContextCache, generating on a miss.

    Usage:
        cache = ContextCache.from_config(Config.from_env())
        service = CachedStoryService(cache, llm.generate_segment, llm.generate_choices)
        text = service.get_segment(StoryContext("user-1", genre="fantasy"))
    """

    def __init__(self, cache: ContextCache, segment_generator: SegmentGenerator, choice_generator: ChoiceGenerator):
        self.cache = cache
        self._generate_segment = segment_generator
        self._generate_choices = choice_generator

    def get_segment(self, context: StoryContext) -> str:
        cached = self.cache.get_story_segment(context)
        if cached is not None:
            return cached

        segment = self._call_generator("segment", self._generate_segment, context)
        self.cache.set_story_segment(context, segment)
        return segment

    def get_choices(self, context: StoryContext) -> List[str]:
        cached = self.cache.get_choices(context)
        if cached is not None:
            return cached

        choices = list(self._call_generator("choices", self._generate_choices, context))
        self.cache.set_choices(context, choices)
        return choices

    def invalidate_all(self) -> None:
        self.cache.clear()

    def _call_generator(self, kind: str, generator: Callable, context: StoryContext):
        start = time.perf_counter()
        try:
            result = generator(context)
        except Exception as exc:
            logger.warning("Story %s generation failed for %s: %s", kind, describe(context), exc)
            raise
        logger.debug(
            "Generated story %s for %s in %.1fms", kind, describe(context), (time.perf_counter() - start) * 1000
        )
        return result
