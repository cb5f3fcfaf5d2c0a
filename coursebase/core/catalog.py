from dataclasses import dataclass

from coursebase.core.lifecycle import LifecycleEngine
from coursebase.domain.kinds import ARTICLE, CHAPTER, COURSE, PLAYLIST, SECTION
from coursebase.ports.store import ContentStorePort
from coursebase.rules.models import Rules
from coursebase.services.test_suites import TestSuiteService


@dataclass(frozen=True)
class Catalog:
    """One lifecycle engine per content kind, plus the test suite service."""

    courses: LifecycleEngine
    chapters: LifecycleEngine
    sections: LifecycleEngine
    articles: LifecycleEngine
    playlists: LifecycleEngine
    test_suites: TestSuiteService

    def engine(self, kind_name: str) -> LifecycleEngine:
        engines = {
            engine.kind.name: engine
            for engine in (self.courses, self.chapters, self.sections, self.articles, self.playlists)
        }
        try:
            return engines[kind_name]
        except KeyError:
            raise ValueError(f"Unknown entity kind: {kind_name}") from None


def build_catalog(store: ContentStorePort, rules: Rules | None = None) -> Catalog:
    return Catalog(
        courses=LifecycleEngine(COURSE, store, rules),
        chapters=LifecycleEngine(CHAPTER, store, rules),
        sections=LifecycleEngine(SECTION, store, rules),
        articles=LifecycleEngine(ARTICLE, store, rules),
        playlists=LifecycleEngine(PLAYLIST, store, rules),
        test_suites=TestSuiteService(store, rules),
    )
