"""
HarScout Common Utilities

Shared helpers for loading HAR traces and reading secrets from the environment.
"""

import json
import os
from pathlib import Path
from typing import List, Dict, Any, Optional


def get_api_key_from_env() -> Optional[str]:
    """
    Retrieve the Anthropic API key from the environment.

    API keys are never accepted through CLI arguments or config files, which
    would expose them in process lists, shell history and logs.

    Returns:
        API key from ANTHROPIC_API_KEY environment variable, or None if not set
    """
    return os.environ.get('ANTHROPIC_API_KEY')


class TraceLoader:
    """
    Standardized loader for HAR trace files.

    Handles the JSON shapes a trace may arrive in:
    - Format 1: {"log": {"entries": [...]}}  (HAR 1.2)
    - Format 2: {"entries": [...]}            (unwrapped log)
    - Format 3: [...]                         (bare list of entries)

    Example:
        loader = TraceLoader("session.har")
        entries = loader.load()

        for entry in entries:
            print(entry['request']['url'])
    """

    def __init__(self, file_path: str):
        """
        Initialize trace loader.

        Args:
            file_path: Path to HAR file
        """
        self.file_path = Path(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Load trace entries from the HAR file.

        Returns:
            List of raw HAR entry dictionaries

        Raises:
            FileNotFoundError: If the trace file doesn't exist
            ValueError: If JSON format is invalid or unrecognized
        """
        if not self.file_path.exists():
            raise FileNotFoundError(f"Trace file not found: {self.file_path}")

        with open(self.file_path, 'r', encoding='utf-8') as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {self.file_path}: {e}") from e

        return self.entries_from_data(data, source=str(self.file_path))

    @staticmethod
    def entries_from_data(data: Any, source: str = '<memory>') -> List[Dict[str, Any]]:
        """
        Pull the entry list out of already-parsed HAR data.

        Raises:
            ValueError: If the structure is not one of the recognized formats
        """
        if isinstance(data, dict):
            log = data.get('log')
            if isinstance(log, dict) and isinstance(log.get('entries'), list):
                return log['entries']
            if isinstance(data.get('entries'), list):
                return data['entries']
            raise ValueError(
                f"Unexpected JSON format in {source}. "
                f"Expected a HAR document with 'log.entries', a dict with 'entries', "
                f"or a list of entries. Found keys: {list(data.keys())}"
            )
        elif isinstance(data, list):
            return data
        else:
            raise ValueError(
                f"Unexpected JSON format in {source}. "
                f"Expected dict or list, got {type(data).__name__}"
            )

    @staticmethod
    def load_from_file(file_path: str) -> List[Dict[str, Any]]:
        """
        Convenience method to load entries in one call.

        Example:
            entries = TraceLoader.load_from_file("session.har")
        """
        loader = TraceLoader(file_path)
        return loader.load()
