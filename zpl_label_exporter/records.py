"""
Label records, render units, and per-item result types.
"""

# Standard Library
import dataclasses
import enum
import re
import threading
import time

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.errors


ValidationError = zle.errors.ValidationError

GRADE_MIN = 1
GRADE_MAX = 10


class ProblemKind(enum.Enum):
	AVARIA = "Avaria"
	DEFEITO = "Defeito"
	PENDENCIA = "Pendencia"

	@classmethod
	def parse(cls, value: "str | ProblemKind") -> "ProblemKind":
		"""
		Parse a problem kind from its name or value, ignoring case and accents.
		"""
		if isinstance(value, cls):
			return value
		text = str(value).strip().lower().replace("ê", "e")
		for member in cls:
			if text in (member.value.lower(), member.name.lower()):
				return member
		raise ValidationError(f"unknown problem kind: {value!r}")


@dataclasses.dataclass(frozen=True)
class LogisticRecord:
	id: int
	acelerato: str
	grau: int
	problem_kind: ProblemKind
	note: str = ""

	def __post_init__(self) -> None:
		if not re.fullmatch(r"\d+", self.acelerato or ""):
			raise ValidationError(f"acelerato must be numeric: {self.acelerato!r}")
		if not GRADE_MIN <= self.grau <= GRADE_MAX:
			raise ValidationError(f"grau must be between {GRADE_MIN} and {GRADE_MAX}: {self.grau}")
		if not isinstance(self.problem_kind, ProblemKind):
			object.__setattr__(self, "problem_kind", ProblemKind.parse(self.problem_kind))

	@property
	def kind(self) -> str:
		return "logistic"

	@property
	def quantity(self) -> int:
		return 1


@dataclasses.dataclass(frozen=True)
class SalesRecord:
	id: int
	product_name: str
	sku: str
	price_from: str
	price_to: str
	barcode: str
	installment_value: str = "0,00"
	installment_count: int = 10
	qr_link: str = ""
	quantity: int = 1

	def __post_init__(self) -> None:
		if self.quantity < 1:
			raise ValidationError(f"quantity must be at least 1: {self.quantity}")
		if self.installment_count < 1:
			raise ValidationError(f"installment count must be at least 1: {self.installment_count}")

	@property
	def kind(self) -> str:
		return "sales"


LabelRecord = LogisticRecord | SalesRecord


@dataclasses.dataclass(frozen=True)
class LabelUnit:
	index: int
	record: LabelRecord
	program: str


@dataclasses.dataclass(frozen=True)
class RowError:
	row_number: int
	reason: str


@dataclasses.dataclass(frozen=True)
class RenderError:
	unit_index: int
	message: str
	status_code: int | None = None


@dataclasses.dataclass(frozen=True)
class RenderResult:
	unit_index: int
	page_bytes: bytes | None = None
	error: RenderError | None = None

	@property
	def ok(self) -> bool:
		return self.error is None and self.page_bytes is not None


class RecordIdSource:
	"""
	Hand out unique, increasing ids derived from the millisecond clock.

	Two records created within the same millisecond still get distinct ids
	because each id is at least one more than the previous.
	"""

	def __init__(self, clock=time.time):
		self._clock = clock
		self._last = 0
		self._lock = threading.Lock()

	def next_id(self) -> int:
		with self._lock:
			candidate = int(self._clock() * 1000)
			if candidate <= self._last:
				candidate = self._last + 1
			self._last = candidate
			return candidate


#============================================
def coerce_positive_int(value, default: int) -> int:
	"""
	Parse a positive integer, falling back to a default.

	Args:
		value: Raw cell or argument value.
		default: Value used when parsing fails or the result is below 1.

	Returns:
		Parsed integer.
	"""
	if value is None or isinstance(value, bool):
		return default
	if isinstance(value, float):
		if not value.is_integer():
			return default
		value = int(value)
	try:
		number = int(str(value).strip())
	except ValueError:
		return default
	if number < 1:
		return default
	return number


#============================================
def parse_brl_amount(value) -> float:
	"""
	Parse a Brazilian formatted amount such as "1.234,56".

	Args:
		value: String or number.

	Returns:
		Float amount, 0.0 when empty or unparsable.
	"""
	if value is None or value == "":
		return 0.0
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return float(value)
	text = str(value).strip().replace("R$", "").strip()
	if "," in text and "." in text:
		text = text.replace(".", "").replace(",", ".")
	elif "," in text:
		text = text.replace(",", ".")
	elif text.count(".") > 1:
		# "1.000.000" is a thousands-grouped integer
		text = text.replace(".", "")
	try:
		return float(text)
	except ValueError:
		return 0.0


#============================================
def format_brl(value: float) -> str:
	"""
	Format an amount with Brazilian separators and two decimals.

	Args:
		value: Amount.

	Returns:
		Text like "1.234,56".
	"""
	text = f"{value:,.2f}"
	return text.replace(",", "_").replace(".", ",").replace("_", ".")


#============================================
def is_decimal_text(value: str) -> bool:
	"""
	Check that a display amount parses as a decimal number.

	Args:
		value: Display string such as "89,90".

	Returns:
		True for strings like "89,90", "1.234,56" or "89.9".
	"""
	text = (value or "").strip().replace("R$", "").strip()
	return bool(re.fullmatch(r"\d{1,3}(\.\d{3})*(,\d+)?|\d+([.,]\d+)?", text))
