"""
Model catalog loading, validation and export
"""

import csv
import io
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING

import yaml

from .exceptions import CatalogValidationError

if TYPE_CHECKING:
    from .matcher import MatchResult

logger = logging.getLogger(__name__)

CSV_HEADER = ["name", "min_gb", "rec_gb", "context", "description"]


@dataclass(frozen=True)
class ModelDescriptor:
    """A model variant with its memory requirements"""
    name: str
    min_gb: int
    rec_gb: int
    context: int
    description: str

    @property
    def family(self) -> str:
        return self.name.split(":", 1)[0]

    @property
    def tag(self) -> str:
        return self.name.split(":", 1)[1] if ":" in self.name else "latest"

    @property
    def size_class(self) -> str:
        """Bucket used by the catalog statistics: small, medium or large"""
        if self.rec_gb <= 4:
            return "small"
        if self.rec_gb <= 12:
            return "medium"
        return "large"


def _m(name: str, min_gb: int, rec_gb: int, context: int, description: str) -> ModelDescriptor:
    return ModelDescriptor(name, min_gb, rec_gb, context, description)


# Family and size descending by convention
DEFAULT_CATALOG: List[ModelDescriptor] = [
    _m("qwen2.5-coder:32b-instruct-q4_K_M", 20, 24, 32768, "Excellent 32B coding model with Q4 quantization"),
    _m("qwen2.5-coder:14b-instruct-q5_K_M", 12, 16, 32768, "Great 14B coding model with Q5 quantization"),
    _m("qwen2.5-coder:7b-instruct-q8_0", 8, 10, 32768, "Solid 7B model with high quality Q8 quantization"),
    _m("qwen2.5-coder:7b-instruct-q5_K_M", 5, 6, 32768, "Efficient 7B model with Q5 quantization"),
    _m("qwen2.5-coder:3b-instruct-q8_0", 3, 4, 32768, "Compact 3B model with Q8 quantization"),
    _m("qwen2.5-coder:1.5b-instruct-q8_0", 2, 2, 32768, "Smallest Qwen2.5-coder for limited resources"),
    _m("deepseek-coder-v2:16b-lite-instruct-q4_K_M", 10, 12, 16384, "DeepSeek 16B lightweight version"),
    _m("deepseek-coder-v2:16b-lite-instruct-q5_K_M", 12, 14, 16384, "DeepSeek 16B with better quantization"),
    _m("codellama:34b-instruct-q4_K_M", 20, 24, 16384, "Meta's 34B CodeLlama with Q4 quantization"),
    _m("codellama:13b-instruct-q5_K_M", 10, 12, 16384, "Meta's 13B CodeLlama with Q5 quantization"),
    _m("codellama:7b-instruct-q8_0", 8, 10, 16384, "Meta's 7B CodeLlama with high quality"),
    _m("codellama:7b-instruct-q5_K_M", 5, 6, 16384, "Meta's 7B CodeLlama efficient version"),
    _m("starcoder2:15b-q4_K_M", 10, 12, 16384, "StarCoder2 15B for code completion"),
    _m("starcoder2:7b-q5_K_M", 5, 6, 16384, "StarCoder2 7B efficient version"),
    _m("starcoder2:3b-q8_0", 3, 4, 16384, "StarCoder2 compact 3B model"),
    _m("codegemma:7b-instruct-q5_K_M", 5, 6, 8192, "Google's CodeGemma 7B"),
    _m("codegemma:2b-q8_0", 2, 3, 8192, "Google's CodeGemma 2B compact"),
    _m("granite-code:8b-instruct-q4_K_M", 5, 6, 8192, "IBM Granite Code 8B"),
    _m("granite-code:3b-q8_0", 3, 4, 8192, "IBM Granite Code 3B compact"),
    _m("stable-code:3b-q8_0", 3, 4, 16384, "Stability AI's compact 3B model"),
    _m("phi:3-mini-q5_K_M", 3, 4, 4096, "Microsoft Phi-3 compact efficient model"),
    _m("mistral:7b-instruct-q5_K_M", 5, 6, 8192, "Mistral 7B with coding capabilities"),
    _m("llama3:8b-instruct-q5_K_M", 5, 6, 8192, "Meta Llama 3 8B with coding support"),
]


_INT_RE = re.compile(r"-?[0-9]+")


def _parse_int(value: str, field_name: str, line: int) -> int:
    # ASCII digits with an optional minus sign only
    if not _INT_RE.fullmatch(value.strip()):
        raise CatalogValidationError(f"{field_name} must be an integer, got {value!r}", line)
    return int(value.strip())


def validate_descriptor(descriptor: ModelDescriptor, line: Optional[int] = None) -> None:
    """Check the invariants the matcher and the CSV writer rely on"""
    if not descriptor.name:
        raise CatalogValidationError("model name is empty", line)
    if "," in descriptor.name:
        raise CatalogValidationError(f"model name must not contain a comma: {descriptor.name!r}", line)
    if "," in descriptor.description:
        raise CatalogValidationError(
            f"description must not contain a comma for {descriptor.name}: {descriptor.description!r}", line
        )
    if descriptor.rec_gb <= 0:
        raise CatalogValidationError(
            f"rec_gb must be positive for {descriptor.name}, got {descriptor.rec_gb}", line
        )
    if descriptor.min_gb < 0:
        raise CatalogValidationError(
            f"min_gb must not be negative for {descriptor.name}, got {descriptor.min_gb}", line
        )
    if descriptor.min_gb > descriptor.rec_gb:
        raise CatalogValidationError(
            f"min_gb ({descriptor.min_gb}) exceeds rec_gb ({descriptor.rec_gb}) for {descriptor.name}",
            line,
        )
    if descriptor.context <= 0:
        raise CatalogValidationError(
            f"context must be positive for {descriptor.name}, got {descriptor.context}", line
        )


def parse_catalog(text: str) -> List[ModelDescriptor]:
    """Parse catalog CSV text into descriptors.

    The first row must be the ``name,min_gb,rec_gb,context,description``
    header. Every data row must carry exactly five fields; descriptions
    cannot contain commas. Blank lines are skipped.
    """
    reader = csv.reader(io.StringIO(text))
    rows = [(reader.line_num, row) for row in reader]
    rows = [(line, row) for line, row in rows if row and any(cell.strip() for cell in row)]

    if not rows:
        raise CatalogValidationError("catalog file is empty")

    header_line, header = rows[0]
    if [cell.strip() for cell in header] != CSV_HEADER:
        raise CatalogValidationError(
            f"expected header {','.join(CSV_HEADER)}, got {','.join(header)}", header_line
        )

    descriptors = []
    for line, row in rows[1:]:
        if len(row) != len(CSV_HEADER):
            raise CatalogValidationError(
                f"expected {len(CSV_HEADER)} fields, got {len(row)}", line
            )
        name, min_gb, rec_gb, context, description = row
        descriptor = ModelDescriptor(
            name=name.strip(),
            min_gb=_parse_int(min_gb, "min_gb", line),
            rec_gb=_parse_int(rec_gb, "rec_gb", line),
            context=_parse_int(context, "context", line),
            description=description.strip(),
        )
        validate_descriptor(descriptor, line)
        descriptors.append(descriptor)

    if not descriptors:
        raise CatalogValidationError("catalog file contains no models")

    return descriptors


def load_catalog(path: Path) -> List[ModelDescriptor]:
    """Load and validate a catalog override file"""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise CatalogValidationError(f"cannot read catalog file {path}: {e}")

    descriptors = parse_catalog(text)
    logger.debug(f"Loaded {len(descriptors)} models from {path}")
    return descriptors


def catalog_to_csv(descriptors: Iterable[ModelDescriptor]) -> str:
    """Render descriptors in the catalog CSV format"""
    lines = [",".join(CSV_HEADER)]
    for d in descriptors:
        lines.append(f"{d.name},{d.min_gb},{d.rec_gb},{d.context},{d.description}")
    return "\n".join(lines) + "\n"


class ModelCatalog:
    """The set of model variants considered for recommendation"""

    def __init__(self, catalog_file: Optional[Path] = None):
        self.catalog_file = catalog_file
        if catalog_file is not None:
            self.models: List[ModelDescriptor] = load_catalog(catalog_file)
        else:
            self.models = list(DEFAULT_CATALOG)
            logger.debug(f"Using built-in catalog with {len(self.models)} models")

    @classmethod
    def from_descriptors(cls, descriptors: Sequence[ModelDescriptor]) -> "ModelCatalog":
        catalog = cls()
        for line, descriptor in enumerate(descriptors, 1):
            validate_descriptor(descriptor, line)
        catalog.models = list(descriptors)
        return catalog

    def __iter__(self):
        return iter(self.models)

    def __len__(self) -> int:
        return len(self.models)

    @property
    def source(self) -> str:
        return str(self.catalog_file) if self.catalog_file else "built-in"

    def get_model(self, name: str) -> Optional[ModelDescriptor]:
        """Get a model by its full name"""
        for model in self.models:
            if model.name == name:
                return model
        return None

    def families(self) -> List[str]:
        """Model families in catalog order, without duplicates"""
        seen = []
        for model in self.models:
            if model.family not in seen:
                seen.append(model.family)
        return seen

    def stats(self) -> Dict[str, int]:
        counts = {"total": len(self.models), "small": 0, "medium": 0, "large": 0}
        for model in self.models:
            counts[model.size_class] += 1
        return counts

    def write_csv(self, path: Path) -> Path:
        """Write the catalog to a CSV file that can be used as an override"""
        path = Path(path)
        path.write_text(catalog_to_csv(self.models), encoding="utf-8")
        logger.info(f"Wrote {len(self.models)} models to {path}")
        return path


def export_results(match: "MatchResult", format: str = "json") -> str:
    """Export a match result as JSON, CSV or YAML"""
    data = []
    for fit in match.candidates:
        data.append({
            "name": fit.descriptor.name,
            "tier": fit.tier.value,
            "min_gb": fit.descriptor.min_gb,
            "rec_gb": fit.descriptor.rec_gb,
            "context": fit.descriptor.context,
            "adjusted_context": fit.adjusted_context,
            "note": fit.note,
            "description": fit.descriptor.description,
        })

    if format == "json":
        return json.dumps(data, indent=2)
    elif format == "csv":
        return _export_csv(data)
    elif format == "yaml":
        return yaml.dump(data, default_flow_style=False, sort_keys=False)
    else:
        raise ValueError(f"Unsupported format: {format}")


def _export_csv(data: List[Dict]) -> str:
    if not data:
        return ""

    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=list(data[0].keys()))
    writer.writeheader()
    for row in data:
        writer.writerow(row)
    return output.getvalue()
