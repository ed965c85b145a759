"""
Per-backend settings persisted as one JSON document each.

Hey future me – every backend subclasses BaseSourceSettings and declares its fields
with setting_field(...). The category/label metadata IS the schema: a settings UI
calls describe_fields() and renders one control per entry, no runtime guessing.

File layout:
    <app-data>/<app-name>/Sources/<backend>.json   (pretty printed)

Rules:
- load(): missing file = keep defaults (first run must not fail or prompt),
  corrupt file / I/O error = log + keep current values. Never raises.
- save(): writes every persisted field, raises SettingsPersistenceError on failure.
- reset_to_defaults(): fresh instance, copy every persisted field over, save.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from tunesource.config import get_settings
from tunesource.domain.exceptions import SettingsPersistenceError
from tunesource.domain.ports.source import ISourceSettings, SettingField

logger = logging.getLogger(__name__)


def setting_field(
    default: Any,
    *,
    label: str,
    category: str = "General",
    description: str | None = None,
    **kwargs: Any,
) -> Any:
    """Declare a persisted settings field with its UI metadata."""
    return Field(
        default=default,
        description=description,
        json_schema_extra={"label": label, "category": category},
        **kwargs,
    )


class BaseSourceSettings(BaseModel, ISourceSettings):
    """Base class for backend settings documents."""

    model_config = ConfigDict(validate_assignment=True, extra="ignore")

    # Backend name, also the JSON file name. Subclasses MUST override.
    SOURCE_NAME: ClassVar[str] = ""

    is_enabled: bool = setting_field(True, label="Enabled", description="Use this source")

    # Not persisted: where the JSON file lives
    _settings_dir: Path | None = PrivateAttr(default=None)

    def __init__(self, settings_dir: Path | None = None, **data: Any) -> None:
        """
        Args:
            settings_dir: Directory for the JSON file, defaults to Settings.sources_dir
            **data: Field values overriding the defaults
        """
        super().__init__(**data)
        self._settings_dir = settings_dir

    @property
    def source_name(self) -> str:
        return self.SOURCE_NAME

    @property
    def settings_file(self) -> Path:
        directory = self._settings_dir or get_settings().sources_dir
        return directory / f"{self.SOURCE_NAME}.json"

    @classmethod
    def persisted_field_names(cls) -> list[str]:
        """Names of every field written to disk, in declaration order."""
        return [name for name, info in cls.model_fields.items() if not info.exclude]

    @classmethod
    def describe_fields(cls) -> list[SettingField]:
        descriptors: list[SettingField] = []
        for name in cls.persisted_field_names():
            info = cls.model_fields[name]
            extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
            descriptors.append(
                SettingField(
                    name=name,
                    label=str(extra.get("label", name)),
                    category=str(extra.get("category", "General")),
                    default=info.get_default(call_default_factory=True),
                    description=info.description,
                )
            )
        return descriptors

    def _copy_fields_from(self, other: "BaseSourceSettings", names: list[str]) -> None:
        for name in names:
            setattr(self, name, getattr(other, name))

    async def load(self) -> bool:
        path = self.settings_file
        if not await asyncio.to_thread(path.exists):
            logger.debug(f"No settings file for {self.source_name} at {path}, keeping defaults")
            return False

        try:
            raw = await asyncio.to_thread(path.read_text, "utf-8")
            loaded = type(self).model_validate_json(raw)
        except (OSError, ValidationError, ValueError) as e:
            logger.error(f"Failed to load settings for {self.source_name} from {path}: {e}")
            return False

        # Only what the file actually contains; newer fields keep their in-memory values
        present = [name for name in self.persisted_field_names() if name in loaded.model_fields_set]
        self._copy_fields_from(loaded, present)
        logger.info(f"Loaded {len(present)} settings for {self.source_name} from {path}")
        return True

    async def save(self) -> None:
        path = self.settings_file
        document = self.model_dump(mode="json", include=set(self.persisted_field_names()))
        text = json.dumps(document, indent=2, ensure_ascii=False)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text + "\n", encoding="utf-8")

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            logger.error(f"Failed to save settings for {self.source_name} to {path}: {e}")
            raise SettingsPersistenceError(self.source_name, str(path), e) from e
        logger.debug(f"Saved settings for {self.source_name} to {path}")

    async def reset_to_defaults(self) -> None:
        defaults = type(self)(settings_dir=self._settings_dir)
        self._copy_fields_from(defaults, self.persisted_field_names())
        logger.info(f"Reset settings for {self.source_name} to defaults")
        await self.save()
