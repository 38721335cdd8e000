from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple, Union

from json_locale_translator.errors import MissingTranslationError

PathSegment = Union[str, int]
Path = Tuple[PathSegment, ...]


class _StringSlot:
    """Marks the position of an erased string leaf inside a skeleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<string slot>"

    def __deepcopy__(self, memo):
        return self


STRING_SLOT = _StringSlot()


@dataclass(frozen=True)
class FlatEntry:
    """A single string leaf: where it lives and what it says."""
    path: Path
    value: str


@dataclass
class FlatDocument:
    """
    A flattened JSON document.

    Attributes:
        file_id: Identifier of the source file (relative path).
        entries: String leaves in depth-first document order.
        skeleton: The original tree with every string leaf replaced by
            STRING_SLOT. Key order, array lengths and non-string leaves are
            kept as they were.
    """
    file_id: str
    entries: List[FlatEntry] = field(default_factory=list)
    skeleton: Any = None


def format_path(path: Path) -> str:
    """
    Render a path the way it is shown in logs and reports.

    Example: ('items', 2, 'label') -> 'items[2].label'
    """
    parts: List[str] = []
    for segment in path:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif parts:
            parts.append(f".{segment}")
        else:
            parts.append(segment)
    return ''.join(parts)


def _flatten_node(node: Any, path: Path, entries: List[FlatEntry]) -> Any:
    if isinstance(node, dict):
        return {key: _flatten_node(child, path + (key,), entries) for key, child in node.items()}
    if isinstance(node, list):
        return [_flatten_node(child, path + (index,), entries) for index, child in enumerate(node)]
    if isinstance(node, str):
        entries.append(FlatEntry(path, node))
        return STRING_SLOT
    # Numbers, booleans and null are fixed values of the skeleton.
    return node


def flatten(node: Any, file_id: str = "") -> FlatDocument:
    """
    Flatten a parsed JSON tree into its string leaves and a skeleton.

    Objects contribute their keys and arrays their indices to the path.
    Traversal follows key insertion order and array order, so flattening the
    same tree twice yields identical entry sequences.

    Args:
        node: The root JSON value as returned by json.load.
        file_id: Identifier recorded on the resulting document.

    Returns:
        FlatDocument: The string entries and the skeleton needed to rebuild.
    """
    entries: List[FlatEntry] = []
    skeleton = _flatten_node(node, (), entries)
    return FlatDocument(file_id=file_id, entries=entries, skeleton=skeleton)


def _rebuild_node(node: Any, path: Path, translations: Mapping[Path, str], file_id: str) -> Any:
    if node is STRING_SLOT:
        try:
            return translations[path]
        except KeyError:
            raise MissingTranslationError(path, file_id) from None
    if isinstance(node, dict):
        return {key: _rebuild_node(child, path + (key,), translations, file_id) for key, child in node.items()}
    if isinstance(node, list):
        return [_rebuild_node(child, path + (index,), translations, file_id) for index, child in enumerate(node)]
    return node


def rebuild(skeleton: Any, translations: Mapping[Path, str], file_id: str = "") -> Any:
    """
    Fill every string slot of a skeleton from a path -> text mapping.

    Raises:
        MissingTranslationError: If a slot has no entry in `translations`.
    """
    return _rebuild_node(skeleton, (), translations, file_id)


def entries_by_path(document: FlatDocument) -> Dict[Path, str]:
    """Return the document's string leaves keyed by path."""
    return {entry.path: entry.value for entry in document.entries}
