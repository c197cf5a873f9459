from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from menswear_ops.models import ColorDefinition, SizeDefinition
from menswear_ops.services.repository import InventoryRepository
from menswear_ops.services.sort_utils import definition_sort_key


@dataclass(frozen=True)
class Definitions:
    sizes: list[SizeDefinition] = field(default_factory=list)
    colors: list[ColorDefinition] = field(default_factory=list)

    def sizes_for(self, category: str) -> list[SizeDefinition]:
        rows = [size for size in self.sizes if size.category == category]
        return sorted(rows, key=lambda size: definition_sort_key(sort_order=size.sort_order, size_code=size.size_code))

    def color(self, color_id: int) -> ColorDefinition | None:
        return next((color for color in self.colors if color.id == color_id), None)


def load_definitions(repo: InventoryRepository) -> Definitions:
    return Definitions(sizes=repo.list_sizes(), colors=repo.list_colors())


class DefinitionsCache:
    """Reference tables are read once and served from memory until invalidated."""

    def __init__(self) -> None:
        self._definitions: Definitions | None = None
        self.loads = 0

    def get(self, loader: Callable[[], Definitions]) -> Definitions:
        if self._definitions is None:
            self._definitions = loader()
            self.loads += 1
        return self._definitions

    def invalidate(self) -> None:
        self._definitions = None


definitions_cache = DefinitionsCache()
