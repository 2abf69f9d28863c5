"""
ZPL label programs for logistic and sales records.
"""

# Standard Library
import re

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.config
import zpl_label_exporter.records


LogisticRecord = zle.records.LogisticRecord
SalesRecord = zle.records.SalesRecord
ProblemKind = zle.records.ProblemKind

LABEL_WIDTH_DOTS = zle.config.LABEL_WIDTH_DOTS
LABEL_HEIGHT_DOTS = zle.config.LABEL_HEIGHT_DOTS
NOTE_MAX_LINES = zle.config.NOTE_MAX_LINES

FRAME_MARGIN = 40
FRAME_THICKNESS = 8
SHAPE_SIZE = 220
SHAPE_LEFT = 296
SHAPE_TOP = 200
PRICE_CHAR_WIDTH = 24

SHAPE_MARKERS = {
	ProblemKind.AVARIA: "^FX shape: triangle",
	ProblemKind.DEFEITO: "^FX shape: square",
	ProblemKind.PENDENCIA: "^FX shape: circle",
}


#============================================
def escape_field_data(value: str) -> str:
	"""
	Escape text for a ^FH field so user input cannot start a command.

	Args:
		value: Raw text.

	Returns:
		Text with "_", "^" and "~" written as hex escapes.
	"""
	text = value or ""
	text = text.replace("_", "_5F")
	text = text.replace("^", "_5E")
	text = text.replace("~", "_7E")
	text = re.sub(r"[\r\n]+", " ", text)
	return text


#============================================
def text_field(y: int, font_size: int, text: str, lines: int = 1, x: int = 0, width: int = LABEL_WIDTH_DOTS) -> str:
	"""
	Build a centered field block with escaped text.

	Args:
		y: Top of the block in dots.
		font_size: Font 0 height in dots.
		text: Field text.
		lines: Maximum wrapped lines.
		x: Left of the block in dots.
		width: Block width in dots.

	Returns:
		ZPL fragment.
	"""
	return (
		f"^FO{x},{y}^A0N,{font_size},{font_size}"
		f"^FB{width},{lines},0,C^FH^FD{escape_field_data(text)}^FS"
	)


#============================================
def label_header() -> list[str]:
	return [
		"^XA",
		f"^PW{LABEL_WIDTH_DOTS}",
		f"^LL{LABEL_HEIGHT_DOTS}",
		"^CI28",
		"^LH0,0",
	]


#============================================
def shape_for(kind: ProblemKind) -> list[str]:
	"""
	Build the outline shape for a problem kind.

	Args:
		kind: Problem kind.

	Returns:
		ZPL lines, starting with the shape marker comment.
	"""
	marker = SHAPE_MARKERS[kind]
	right = SHAPE_LEFT + SHAPE_SIZE
	bottom = SHAPE_TOP + SHAPE_SIZE
	half = SHAPE_SIZE // 2
	if kind is ProblemKind.AVARIA:
		return [
			marker,
			f"^FO{SHAPE_LEFT},{SHAPE_TOP}^GD{half},{SHAPE_SIZE},{FRAME_THICKNESS},B,R^FS",
			f"^FO{SHAPE_LEFT + half},{SHAPE_TOP}^GD{half},{SHAPE_SIZE},{FRAME_THICKNESS},B,L^FS",
			f"^FO{SHAPE_LEFT},{bottom - FRAME_THICKNESS}^GB{right - SHAPE_LEFT},{FRAME_THICKNESS},{FRAME_THICKNESS}^FS",
		]
	if kind is ProblemKind.DEFEITO:
		return [
			marker,
			f"^FO{SHAPE_LEFT},{SHAPE_TOP}^GB{SHAPE_SIZE},{SHAPE_SIZE},{FRAME_THICKNESS}^FS",
		]
	if kind is ProblemKind.PENDENCIA:
		return [
			marker,
			f"^FO{SHAPE_LEFT},{SHAPE_TOP}^GC{SHAPE_SIZE},{FRAME_THICKNESS},B^FS",
		]
	raise ValueError(f"unhandled problem kind: {kind}")


#============================================
def encode_logistic(record: LogisticRecord) -> str:
	"""
	Encode a logistic defect tag.

	Args:
		record: LogisticRecord.

	Returns:
		ZPL program text.
	"""
	frame_width = LABEL_WIDTH_DOTS - 2 * FRAME_MARGIN
	frame_height = LABEL_HEIGHT_DOTS - 2 * FRAME_MARGIN
	lines = label_header()
	lines.append("^FX frame")
	lines.append(f"^FO{FRAME_MARGIN},{FRAME_MARGIN}^GB{frame_width},{frame_height},{FRAME_THICKNESS}^FS")
	lines.extend(shape_for(record.problem_kind))
	lines.append(text_field(470, 48, record.problem_kind.name))
	lines.append(text_field(610, 120, f"#{record.acelerato}"))
	lines.append(text_field(780, 48, "GRAU DE REPARO:"))
	lines.append(text_field(870, 60, str(record.grau)))
	note = (record.note or "").strip()
	if note:
		lines.append("^FX note")
		lines.append(
			text_field(
				960,
				32,
				note,
				lines=NOTE_MAX_LINES,
				x=FRAME_MARGIN + 20,
				width=frame_width - 40,
			)
		)
	lines.append("^XZ")
	return "\n".join(lines) + "\n"


#============================================
def barcode_field(barcode: str) -> str:
	"""
	Build the barcode field, EAN-13 for numeric EANs and Code 128 otherwise.

	Args:
		barcode: Barcode text.

	Returns:
		ZPL fragment.
	"""
	value = (barcode or "").strip()
	if re.fullmatch(r"\d{12,13}", value):
		# ^BE computes the check digit from the first 12 digits
		return f"^BY3,2,120^FO140,580^BEN,120,Y,N^FD{value[:12]}^FS"
	return f"^BY3,2,120^FO80,580^BCN,120,Y,N,N^FH^FD{escape_field_data(value)}^FS"


#============================================
def strike_line(y: int, text: str) -> str:
	"""
	Draw a horizontal line through a centered single-line field.
	"""
	width = min(LABEL_WIDTH_DOTS - 2 * FRAME_MARGIN, len(text) * PRICE_CHAR_WIDTH + 20)
	left = (LABEL_WIDTH_DOTS - width) // 2
	return f"^FO{left},{y}^GB{width},4,4^FS"


#============================================
def encode_sales(record: SalesRecord) -> str:
	"""
	Encode a retail price tag.

	Args:
		record: SalesRecord.

	Returns:
		ZPL program text.
	"""
	price_from_text = f"De R$ {record.price_from}"
	lines = label_header()
	lines.append("^FX product")
	lines.append(text_field(60, 48, record.product_name, lines=3, x=FRAME_MARGIN, width=LABEL_WIDTH_DOTS - 2 * FRAME_MARGIN))
	lines.append("^FX price from")
	lines.append(text_field(260, 44, price_from_text))
	lines.append(strike_line(278, price_from_text))
	lines.append("^FX price to")
	lines.append(text_field(340, 110, f"R$ {record.price_to}"))
	lines.append("^FX installments")
	lines.append(text_field(480, 44, f"{record.installment_count}x R$ {record.installment_value}"))
	lines.append("^FX barcode")
	lines.append(barcode_field(record.barcode))
	lines.append(text_field(790, 32, f"SKU: {record.sku}"))
	qr_link = (record.qr_link or "").strip()
	if qr_link:
		lines.append("^FX qr code")
		lines.append(f"^FO306,860^BQN,2,8^FH^FDQA,{escape_field_data(qr_link)}^FS")
	lines.append("^XZ")
	return "\n".join(lines) + "\n"


#============================================
def encode(record) -> str:
	"""
	Encode any label record into its ZPL program.

	Args:
		record: LogisticRecord or SalesRecord.

	Returns:
		ZPL program text.
	"""
	if isinstance(record, LogisticRecord):
		return encode_logistic(record)
	if isinstance(record, SalesRecord):
		return encode_sales(record)
	raise TypeError(f"not a label record: {type(record).__name__}")
