"""YAML adapter for the vendor/model catalog.

Reads a catalog directory laid out as:

    <catalog_dir>/
        yealink/
            vendor.yaml          # id, name
            models/
                t46s.yaml        # id, name, type, max_account_lines, ...
        fanvil/
            ...

Model files may set a numbering policy:
    allow_zero_number: false
    min_number: 100
    max_number: 999
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from ..domain.entities import DeviceModel
from ..domain.ports import IModelCatalog

logger = logging.getLogger(__name__)

# Models of these types are not phones and cannot be imported from a sheet
NON_IMPORTABLE_TYPES = {"expansion-module"}


class YamlModelCatalog(IModelCatalog):
    """In-memory catalog loaded from YAML files."""

    def __init__(self, models: Optional[list[DeviceModel]] = None, vendor_names: Optional[dict[str, str]] = None):
        """Initialize with already-loaded models.

        Args:
            models: Known device models
            vendor_names: Vendor id -> display name
        """
        self._models: dict[str, DeviceModel] = {}
        self._vendor_names = {k.lower(): v for k, v in (vendor_names or {}).items()}
        for model in models or []:
            self._models[model.id.lower()] = model

    @classmethod
    def from_directory(cls, catalog_dir: str | Path) -> "YamlModelCatalog":
        """Scan a catalog directory.

        Raises:
            FileNotFoundError: If the directory does not exist
        """
        root = Path(catalog_dir)
        if not root.is_dir():
            raise FileNotFoundError(f"Catalog directory not found: {root}")

        models: list[DeviceModel] = []
        vendor_names: dict[str, str] = {}

        for vendor_file in sorted(root.glob("*/vendor.yaml")):
            vendor_data = _read_yaml(vendor_file)
            vendor_id = str(vendor_data.get("id") or vendor_file.parent.name)
            vendor_names[vendor_id] = str(vendor_data.get("name") or vendor_id)

            models_dir = vendor_file.parent / "models"
            model_files = sorted(models_dir.glob("*.yaml")) + sorted(models_dir.glob("*.yml"))
            for model_file in model_files:
                data = _read_yaml(model_file)
                if not data.get("id"):
                    logger.warning(f"Skipping model without id: {model_file}")
                    continue
                models.append(_model_from_dict(data, vendor_id))

        logger.info(f"Loaded {len(models)} models from {len(vendor_names)} vendors")
        return cls(models, vendor_names)

    def resolve(self, vendor: str, model: str) -> Optional[DeviceModel]:
        vendor_key = vendor.strip().lower()
        model_key = model.strip().lower()

        for candidate in self._models.values():
            if candidate.type in NON_IMPORTABLE_TYPES:
                continue
            vendor_match = vendor_key in (
                candidate.vendor.lower(),
                self._vendor_names.get(candidate.vendor.lower(), "").lower(),
            )
            if not vendor_match:
                continue
            if model_key in (candidate.id.lower(), candidate.name.lower()):
                return candidate
        return None

    def get(self, model_id: str) -> Optional[DeviceModel]:
        return self._models.get(model_id.lower())

    def list_models(self) -> list[DeviceModel]:
        return [m for m in self._models.values() if m.type not in NON_IMPORTABLE_TYPES]


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}")
    return data


def _model_from_dict(data: dict[str, Any], vendor_id: str) -> DeviceModel:
    max_number = data.get("max_number")
    return DeviceModel(
        id=str(data["id"]),
        vendor=str(data.get("vendor") or vendor_id),
        name=str(data.get("name") or data["id"]),
        type=str(data.get("type") or "phone"),
        max_account_lines=int(data.get("max_account_lines") or 1),
        allow_zero_number=bool(data.get("allow_zero_number", False)),
        min_number=int(data.get("min_number") or 0),
        max_number=int(max_number) if max_number is not None else None,
    )
