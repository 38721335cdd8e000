import json
import logging
import os
from typing import Any, Dict, List, Tuple

from json_locale_translator.errors import ConfigError, ParseError

logger = logging.getLogger(__name__)


def find_json_files(source_dir: str) -> List[str]:
    """
    Recursively list the .json files under a directory.

    Returns:
        List[str]: Absolute paths, sorted so runs are reproducible.
    """
    json_files = []
    for root, dirs, files in os.walk(source_dir):
        dirs.sort()
        for filename in sorted(files):
            if filename.endswith('.json'):
                json_files.append(os.path.abspath(os.path.join(root, filename)))
    return json_files


def file_id_for(file_path: str, source_dir: str) -> str:
    """Relative POSIX-style path of a file below the source directory."""
    relative = os.path.relpath(file_path, source_dir)
    return relative.replace(os.sep, '/')


def load_json_file(file_path: str, file_id: str) -> Any:
    """
    Read and parse one UTF-8 JSON file.

    Raises:
        ParseError: If the file cannot be read, decoded or parsed.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as file:
            return json.load(file)
    except UnicodeDecodeError as e:
        raise ParseError(file_id, f"not a valid UTF-8 file ({e})") from e
    except json.JSONDecodeError as e:
        raise ParseError(file_id, f"invalid JSON at line {e.lineno} column {e.colno}: {e.msg}") from e
    except OSError as e:
        raise ParseError(file_id, f"could not read file: {e}") from e


def load_source_tree(source_dir: str) -> Tuple[List[Tuple[str, Any]], Dict[str, ParseError]]:
    """
    Load every JSON file under `source_dir`.

    Files that fail to parse are logged and skipped; the rest of the run
    continues without them.

    Returns:
        A tuple containing:
        - The (file_id, parsed JSON) pairs that loaded successfully.
        - A dictionary of skipped files, mapping file_id to its ParseError.
    """
    source_tree: List[Tuple[str, Any]] = []
    parse_errors: Dict[str, ParseError] = {}
    for file_path in find_json_files(source_dir):
        file_id = file_id_for(file_path, source_dir)
        try:
            source_tree.append((file_id, load_json_file(file_path, file_id)))
        except ParseError as e:
            logger.error("Skipping '%s': %s", file_id, e.reason)
            parse_errors[file_id] = e
    logger.info("Loaded %d JSON file(s) from '%s'.", len(source_tree), source_dir)
    return source_tree, parse_errors


def serialize_json(document: Any) -> str:
    """Serialize a tree the way translated files are written."""
    return json.dumps(document, ensure_ascii=False, indent=2) + '\n'


def write_translated_tree(
        output_dir: str,
        lang: str,
        documents: List[Tuple[str, Any]],
        dry_run: bool = False
) -> int:
    """
    Write translated documents to `<output_dir>/<lang>/<file_id>`.

    Files whose content on disk is already identical are left untouched.

    Returns:
        int: Number of files written (or that would be written in a dry run).
    """
    written = 0
    for file_id, document in documents:
        out_path = os.path.join(output_dir, lang, *file_id.split('/'))
        new_content = serialize_json(document)

        existing_content = None
        if os.path.exists(out_path):
            try:
                with open(out_path, 'r', encoding='utf-8') as file:
                    existing_content = file.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Could not read existing file '%s', it will be overwritten: %s", out_path, e)
        if existing_content == new_content:
            logger.debug("'%s' is unchanged.", out_path)
            continue

        if dry_run:
            logger.info("[Dry Run] Would write translated content to '%s'.", out_path)
        else:
            os.makedirs(os.path.dirname(out_path), exist_ok=True)
            with open(out_path, 'w', encoding='utf-8') as file:
                file.write(new_content)
            logger.info("Translated file saved to '%s'.", out_path)
        written += 1
    return written


def validate_paths(source_dir: str, output_dir: str):
    """
    Check the source directory is readable and the output directory writable.

    Raises:
        ConfigError: On the first unusable path.
    """
    if not os.path.isdir(source_dir):
        raise ConfigError(f"Source directory '{source_dir}' does not exist or is not a directory.")
    if not os.access(source_dir, os.R_OK | os.X_OK):
        raise ConfigError(f"Source directory '{source_dir}' is not readable.")

    # The output directory may not exist yet; check the closest existing ancestor.
    candidate = os.path.abspath(output_dir)
    while not os.path.exists(candidate):
        parent = os.path.dirname(candidate)
        if parent == candidate:
            break
        candidate = parent
    if not os.path.isdir(candidate):
        raise ConfigError(f"Output path '{output_dir}' is not a directory.")
    if not os.access(candidate, os.W_OK | os.X_OK):
        raise ConfigError(f"Output directory '{output_dir}' is not writable.")


def write_failure_report(report_path: str, result, parse_errors: Dict[str, ParseError]):
    """
    Write a Markdown report of failed languages and skipped files.

    An old report is removed when the run had no problems.
    """
    has_failures = result is not None and not result.ok
    if not has_failures and not parse_errors:
        if os.path.exists(report_path):
            os.remove(report_path)
        return

    logger.info("Some languages or files had problems. Writing report to %s", report_path)
    report_dir = os.path.dirname(report_path)
    if report_dir:
        os.makedirs(report_dir, exist_ok=True)
    with open(report_path, 'w', encoding='utf-8') as f:
        f.write("## ⚠️ Translation Pipeline Warnings\n\n")
        if parse_errors:
            f.write("The following files were skipped because they could not be parsed:\n\n")
            for file_id, error in parse_errors.items():
                f.write(f"- `{file_id}`: {error.reason}\n")
            f.write("\n")
        if has_failures:
            f.write("The following languages produced no output:\n\n")
            for lang in result.failed_languages:
                f.write(f"### 🌐 `{lang}`\n")
                f.write("\n".join(_language_failure_lines(result, lang)))
                f.write("\n\n")


def _language_failure_lines(result, lang: str) -> List[str]:
    error = result.failures[lang]
    lines = [f"- {error}"]
    for text, failure in getattr(error, 'failures', {}).items():
        lines.append(f"- `{text}`: {failure.kind} - {failure}")
    return lines
