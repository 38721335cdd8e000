from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple

from json_locale_translator.json_flattener import FlatDocument, Path


class Location(NamedTuple):
    """Where a string occurs: source file and leaf path."""
    file_id: str
    path: Path


@dataclass
class UniqueStringIndex:
    """
    Reverse index from each distinct source string to its occurrences.

    Attributes:
        occurrences: Distinct translatable string -> every location it
            appears at, in document order. Keys keep first-occurrence order.
        passthrough: Locations of strings that are kept as they are instead
            of being translated (empty strings unless configured otherwise).
    """
    occurrences: Dict[str, List[Location]] = field(default_factory=dict)
    passthrough: List[Location] = field(default_factory=list)

    def strings_to_translate(self) -> List[str]:
        return list(self.occurrences)

    def occurrence_count(self) -> int:
        return sum(len(locations) for locations in self.occurrences.values())

    def __len__(self) -> int:
        return len(self.occurrences)

    def __contains__(self, text: object) -> bool:
        return text in self.occurrences


def build_unique_string_index(
        documents: Iterable[FlatDocument],
        translate_empty_strings: bool = False
) -> UniqueStringIndex:
    """
    Group the string leaves of all documents by exact value.

    Values are compared as-is: no case folding, no whitespace trimming.

    Args:
        documents: Flattened source documents.
        translate_empty_strings: When False, empty strings are recorded as
            pass-through and never sent for translation.

    Returns:
        UniqueStringIndex: The deduplicated strings and their locations.
    """
    index = UniqueStringIndex()
    for document in documents:
        for entry in document.entries:
            location = Location(document.file_id, entry.path)
            if entry.value == "" and not translate_empty_strings:
                index.passthrough.append(location)
                continue
            index.occurrences.setdefault(entry.value, []).append(location)
    return index
