from __future__ import annotations

from typing import Iterable

from backlist.domain.models import EndpointDescriptor


class EndpointIndex:
    """
    Ordered set of endpoints keyed by `METHOD:route`.

    First insertion wins; later observations of the same key are dropped and
    never merged into the stored descriptor.
    """

    def __init__(self) -> None:
        self._by_key: dict[str, EndpointDescriptor] = {}
        self.duplicates = 0

    def add(self, endpoint: EndpointDescriptor) -> bool:
        if endpoint.key in self._by_key:
            self.duplicates += 1
            return False
        self._by_key[endpoint.key] = endpoint
        return True

    def extend(self, endpoints: Iterable[EndpointDescriptor]) -> None:
        for e in endpoints:
            self.add(e)

    def __contains__(self, key: object) -> bool:
        return key in self._by_key

    def __len__(self) -> int:
        return len(self._by_key)

    def values(self) -> list[EndpointDescriptor]:
        return list(self._by_key.values())


def aggregate(batches: Iterable[Iterable[EndpointDescriptor]]) -> list[EndpointDescriptor]:
    """
    Fold per-file endpoint lists (already in deterministic file order) into the
    final IR. Single-threaded by construction.
    """
    index = EndpointIndex()
    for batch in batches:
        index.extend(batch)
    return index.values()
