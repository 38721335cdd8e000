import re
import uuid
from typing import Dict, Tuple

# i18next/ICU style `{{name}}` and `{name}`, printf style `%s` / `%1$d`, and HTML-like tags.
PLACEHOLDER_PATTERN = re.compile(r'(<[^<>]+>)|(\{\{[^{}]+\}\})|(\{[^{}]+\})|(%(?:\d+\$)?[sdif])')


def extract_placeholders(text: str) -> Tuple[str, Dict[str, str]]:
    """
    Extract and replace placeholders in the text with unique tokens.

    Args:
        text (str): The text to process.

    Returns:
        Tuple[str, Dict[str, str]]: The processed text and placeholder mapping.
    """
    if not isinstance(text, str):
        raise ValueError("Input text must be a string.")

    placeholder_mapping = {}

    def replace_placeholder(match):
        placeholder_token = f"__PH_{uuid.uuid4().hex}__"
        placeholder_mapping[placeholder_token] = match.group(0)
        return placeholder_token

    processed_text = PLACEHOLDER_PATTERN.sub(replace_placeholder, text)
    return processed_text, placeholder_mapping


def restore_placeholders(text: str, placeholder_mapping: Dict[str, str]) -> str:
    """Put the original placeholders back in place of their tokens."""
    for token, placeholder in placeholder_mapping.items():
        text = text.replace(token, placeholder)
    return text


def clean_translated_text(translated_text: str, original_text: str) -> str:
    """
    Strip wrapping quotes or square brackets a model added around its answer.

    Wrapping characters that were already present in the original text are
    kept.
    """
    for opening, closing in (('"', '"'), ('[', ']')):
        if (len(translated_text) >= 2
                and translated_text.startswith(opening) and translated_text.endswith(closing)
                and not (original_text.startswith(opening) and original_text.endswith(closing))):
            translated_text = translated_text[1:-1]
    return translated_text
