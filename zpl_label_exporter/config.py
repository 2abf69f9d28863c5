"""
Shared configuration and constants.
"""

# Standard Library
import dataclasses
import enum

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.errors


ValidationError = zle.errors.ValidationError

# Labelary rendering service
DEFAULT_RENDERER_URL = "http://api.labelary.com/v1/printers"
DEFAULT_DPMM = 8
DEFAULT_LABEL_WIDTH_IN = 4.0
DEFAULT_LABEL_HEIGHT_IN = 6.0
DEFAULT_REQUESTS_PER_SECOND = 3.0
DEFAULT_RENDER_TIMEOUT = 30.0

# ZPL canvas for a 4x6 label at 8 dpmm (203 dpi)
LABEL_WIDTH_DOTS = 812
LABEL_HEIGHT_DOTS = 1218
NOTE_MAX_LINES = 6

# batch export
DEFAULT_CHUNK_SIZE = 50
DEFAULT_CHUNK_PAUSE = 1.0
DEFAULT_BASE_NAME = "etiquetas"
DEFAULT_EXTENSION = "pdf"
SUMMARY_REASON_LIMIT = 5
PROGRESS_BAR_WIDTH = 20

# spreadsheet import
HEADER_ROW_OFFSET = 1
DEFAULT_INSTALLMENT_VALUE = "0,00"
DEFAULT_INSTALLMENT_COUNT = 10
DEFAULT_QR_LINK = ""
DEFAULT_QUANTITY = 1
TEMPLATE_SHEET_NAME = "Etiquetas"

# catalog lookup
DEFAULT_CATALOG_URL = "https://api.fbits.net"
DEFAULT_CATALOG_TIMEOUT = 15.0
CATALOG_MARKDOWN_FACTOR = 0.93
CATALOG_INSTALLMENT_COUNT = 12
CATALOG_FALLBACK_NAME = "Produto sem nome"
CATALOG_FALLBACK_EAN = "SEM EAN"


class ErrorPolicy(enum.Enum):
	ISOLATE = "isolate"
	FAIL_FAST = "fail-fast"


@dataclasses.dataclass
class RendererConfig:
	base_url: str = DEFAULT_RENDERER_URL
	dpmm: int = DEFAULT_DPMM
	label_width_in: float = DEFAULT_LABEL_WIDTH_IN
	label_height_in: float = DEFAULT_LABEL_HEIGHT_IN
	requests_per_second: float = DEFAULT_REQUESTS_PER_SECOND
	timeout_seconds: float = DEFAULT_RENDER_TIMEOUT

	def __post_init__(self):
		if self.requests_per_second <= 0:
			raise ValidationError(f"requests_per_second must be positive: {self.requests_per_second}")
		if self.timeout_seconds <= 0:
			raise ValidationError(f"timeout_seconds must be positive: {self.timeout_seconds}")

	@property
	def min_interval(self) -> float:
		return 1.0 / self.requests_per_second

	@property
	def endpoint(self) -> str:
		width = format_inches(self.label_width_in)
		height = format_inches(self.label_height_in)
		return f"{self.base_url.rstrip('/')}/{self.dpmm}dpmm/labels/{width}x{height}/"


@dataclasses.dataclass
class ExportConfig:
	chunk_size: int = DEFAULT_CHUNK_SIZE
	chunk_pause_seconds: float = DEFAULT_CHUNK_PAUSE
	base_name: str = DEFAULT_BASE_NAME
	extension: str = DEFAULT_EXTENSION
	error_policy: ErrorPolicy = ErrorPolicy.ISOLATE

	def __post_init__(self):
		if self.chunk_size < 1:
			raise ValidationError(f"chunk_size must be at least 1: {self.chunk_size}")
		if self.chunk_pause_seconds < 0:
			raise ValidationError(f"chunk_pause_seconds must not be negative: {self.chunk_pause_seconds}")


@dataclasses.dataclass
class CatalogConfig:
	token: str | None
	base_url: str = DEFAULT_CATALOG_URL
	timeout_seconds: float = DEFAULT_CATALOG_TIMEOUT


#============================================
def format_inches(value: float) -> str:
	"""
	Format a label dimension for the renderer URL.

	Args:
		value: Size in inches.

	Returns:
		Integer text when whole, else trimmed decimal text.
	"""
	if float(value).is_integer():
		return str(int(value))
	return f"{value:.3f}".rstrip("0").rstrip(".")

