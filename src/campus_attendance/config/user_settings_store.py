from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_APP_NAME = os.getenv("APP_NAME", "Campus Attendance")
DOCUMENTS_PATH = Path(os.path.expanduser("~")) / "Documents"
DEFAULT_POINTER_DIR = DOCUMENTS_PATH / DEFAULT_APP_NAME
DEFAULT_SETTINGS_FILENAME = "user_settings.json"
GEOLOCATION_MODES = ("ip", "fixed")

DEFAULT_SETTINGS: Dict[str, Any] = {
	"geolocation_mode": "ip",
	"fixed_latitude": None,
	"fixed_longitude": None,
	"lecturer_id": None,
	"app_data_dir": str(DEFAULT_POINTER_DIR),
}


@dataclass
class UserSettingsStore:
	"""Load and persist user-configurable settings in a JSON file."""

	pointer_dir: Path = field(default_factory=lambda: DEFAULT_POINTER_DIR)
	settings_filename: str = DEFAULT_SETTINGS_FILENAME
	_data: Dict[str, Any] = field(init=False, default_factory=dict)
	app_data_dir: Path = field(init=False)
	settings_file: Path = field(init=False)

	def __post_init__(self) -> None:
		self.pointer_dir = Path(self.pointer_dir)
		self.pointer_dir.mkdir(parents=True, exist_ok=True)
		self.reload()

	# ------------------------------------------------------------------
	# Public API
	# ------------------------------------------------------------------
	@property
	def data(self) -> Dict[str, Any]:
		return dict(self._data)

	def get(self, key: str, default: Any = None) -> Any:
		return self._data.get(key, default)

	def reload(self) -> None:
		pointer_path = self.pointer_dir / self.settings_filename
		pointer_data = self._load_json(pointer_path)

		app_data_raw = pointer_data.get("app_data_dir") or str(self.pointer_dir)
		self.app_data_dir = Path(app_data_raw).expanduser()
		self.app_data_dir.mkdir(parents=True, exist_ok=True)

		self.settings_file = self.app_data_dir / self.settings_filename
		file_data = self._load_json(self.settings_file) if self.settings_file != pointer_path else {}

		combined = dict(DEFAULT_SETTINGS)
		combined.update(pointer_data)
		combined.update(file_data)
		combined["app_data_dir"] = str(self.app_data_dir)
		self._data = combined

	def update(self, **kwargs: Any) -> Dict[str, Any]:
		"""Validate and persist the given keys; unknown keys are ignored."""

		new_data = dict(self._data)
		app_data_dir_changed = False

		if "app_data_dir" in kwargs and kwargs["app_data_dir"]:
			new_dir = Path(kwargs.pop("app_data_dir")).expanduser()
			if new_dir != self.app_data_dir:
				app_data_dir_changed = True
			new_data["app_data_dir"] = str(new_dir)
		kwargs.pop("app_data_dir", None)

		if "geolocation_mode" in kwargs:
			mode = str(kwargs["geolocation_mode"] or "").strip().lower()
			if mode not in GEOLOCATION_MODES:
				raise ValueError(f"Location mode must be one of: {', '.join(GEOLOCATION_MODES)}.")
			kwargs["geolocation_mode"] = mode

		for key, bounds in (("fixed_latitude", 90.0), ("fixed_longitude", 180.0)):
			if key in kwargs:
				kwargs[key] = self._coerce_coordinate(key, kwargs[key], bounds)

		if "lecturer_id" in kwargs:
			kwargs["lecturer_id"] = str(kwargs["lecturer_id"] or "").strip() or None

		for key, value in kwargs.items():
			if key in DEFAULT_SETTINGS:
				new_data[key] = value

		self._data = new_data

		if app_data_dir_changed:
			self.app_data_dir = Path(self._data["app_data_dir"]).expanduser()
			self.app_data_dir.mkdir(parents=True, exist_ok=True)
			self.settings_file = self.app_data_dir / self.settings_filename

		self._persist()
		return dict(self._data)

	# ------------------------------------------------------------------
	# Internal helpers
	# ------------------------------------------------------------------
	def _persist(self) -> None:
		pointer_path = self.pointer_dir / self.settings_filename
		with pointer_path.open("w", encoding="utf-8") as handle:
			json.dump(self._data, handle, indent=2)

		if self.settings_file != pointer_path:
			with self.settings_file.open("w", encoding="utf-8") as handle:
				json.dump(self._data, handle, indent=2)

	@staticmethod
	def _coerce_coordinate(key: str, value: Any, bounds: float) -> float | None:
		if value in (None, ""):
			return None
		try:
			number = float(value)
		except (TypeError, ValueError) as exc:
			raise ValueError(f"{key.replace('_', ' ').capitalize()} must be a number.") from exc
		if not -bounds <= number <= bounds:
			raise ValueError(f"{key.replace('_', ' ').capitalize()} must be between {-bounds:g} and {bounds:g}.")
		return number

	@staticmethod
	def _load_json(path: Path) -> Dict[str, Any]:
		if not path.exists():
			return {}
		try:
			with path.open("r", encoding="utf-8") as handle:
				data = json.load(handle)
		except (OSError, ValueError) as exc:
			logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
			return {}
		return data if isinstance(data, dict) else {}
