from collections.abc import Iterable

from loguru import logger

from cypher_inflector.backends.base_driver import SubsumptionStore


class EntailmentExpander:
    """Expand relationship types to include the types they subsume.

    By default only direct sub-types are added (one hop). With `transitive`
    set, expansion repeats until no new types are found.
    """

    def __init__(self, store: SubsumptionStore, transitive: bool = False) -> None:
        """Initialize an instance."""
        self.store: SubsumptionStore = store
        self.transitive: bool = transitive

    async def get_entailed_types(self, names: Iterable[str]) -> set[str]:
        """Get the input types together with every type subsumed by one of them."""
        entailed = set(names)
        frontier = set(entailed)
        visited = set[str]()

        while frontier:
            name = frontier.pop()
            visited.add(name)
            sources = await self.store.find_subsumption_sources(name)
            entailed.update(sources)
            if self.transitive:
                frontier.update(sources - visited)

        logger.trace(f"Entailed relationship types: {sorted(entailed)}")
        return entailed
