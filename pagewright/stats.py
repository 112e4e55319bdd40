from dataclasses import asdict, dataclass
from typing import Union

from .model import ContentModel


@dataclass(frozen=True)
class DocumentStatistics:
    character_count: int = 0
    word_count: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def count_words(text: str) -> int:
    """Count whitespace-separated words; empty or blank text has none."""
    return len(text.split())


def count_characters(text: str) -> int:
    return len(text)


def compute_statistics(source: Union[str, ContentModel]) -> DocumentStatistics:
    model = source if isinstance(source, ContentModel) else ContentModel(source)
    text = model.inner_text()
    return DocumentStatistics(
        character_count=count_characters(text),
        word_count=count_words(text),
    )
