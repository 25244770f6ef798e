from __future__ import annotations

from pathlib import Path

from selfheal.config.schema import SuiteConfig


class ConfigLoader:
    @staticmethod
    def load(path: str | Path) -> SuiteConfig:
        """Parses the suite file; malformed JSON and schema errors both raise ``ValidationError``."""

        return SuiteConfig.model_validate_json(Path(path).read_text(encoding="utf-8"))
