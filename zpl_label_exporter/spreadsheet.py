"""
Spreadsheet import: read rows, map them to sales records, write the template.
"""

# Standard Library
import csv
import pathlib
import re

# PIP3 modules
import openpyxl

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.records


SalesRecord = zle.records.SalesRecord
RowError = zle.records.RowError
RecordIdSource = zle.records.RecordIdSource
ValidationError = zle.errors.ValidationError
coerce_positive_int = zle.records.coerce_positive_int
format_brl = zle.records.format_brl
is_decimal_text = zle.records.is_decimal_text

HEADER_ROW_OFFSET = zle.config.HEADER_ROW_OFFSET
DEFAULT_INSTALLMENT_VALUE = zle.config.DEFAULT_INSTALLMENT_VALUE
DEFAULT_INSTALLMENT_COUNT = zle.config.DEFAULT_INSTALLMENT_COUNT
DEFAULT_QR_LINK = zle.config.DEFAULT_QR_LINK
DEFAULT_QUANTITY = zle.config.DEFAULT_QUANTITY
TEMPLATE_SHEET_NAME = zle.config.TEMPLATE_SHEET_NAME

# normalized header -> record field, English template names first
HEADER_ALIASES = {
	"product_name": ("productname", "nome", "produto"),
	"sku": ("sku", "ref"),
	"price_from": ("pricefrom", "precode", "de"),
	"price_to": ("priceto", "precopor", "por"),
	"barcode": ("barcode", "ean"),
	"installment_value": ("installmentvalue", "installments", "parcela"),
	"installment_count": ("installmentcount", "vezes"),
	"qr_link": ("qrlink", "link", "qrcode"),
	"quantity": ("quantity", "quantidade", "qtd"),
}
REQUIRED_FIELDS = ("product_name", "sku", "price_from", "price_to", "barcode")
FIELD_LABELS = {
	"product_name": "ProductName",
	"sku": "SKU",
	"price_from": "PriceFrom",
	"price_to": "PriceTo",
	"barcode": "Barcode",
}
TEMPLATE_ROW = {
	"ProductName": "Exemplo Produto",
	"SKU": "EX-001",
	"PriceFrom": "100,00",
	"PriceTo": "89,90",
	"InstallmentValue": "8,99",
	"InstallmentCount": "10",
	"Barcode": "7891234567890",
	"QRLink": "https://exemplo.com",
	"Quantity": "1",
}


#============================================
def normalize_header(value) -> str:
	"""
	Normalize a header cell for alias lookup.

	Args:
		value: Header cell value.

	Returns:
		Lowercase header with non-alphanumeric characters removed.
	"""
	if value is None:
		return ""
	return re.sub(r"[^0-9a-z]", "", str(value).strip().lower())


#============================================
def cell_text(value) -> str:
	"""
	Convert a cell to display text.

	Whole floats lose their ".0" so numeric barcodes survive a round trip
	through spreadsheet software.
	"""
	if value is None:
		return ""
	if isinstance(value, float) and value.is_integer():
		return str(int(value))
	return str(value).strip()


#============================================
def amount_text(value) -> str:
	"""
	Convert a price cell to a display amount.

	Args:
		value: Cell value, numeric or already formatted text.

	Returns:
		Display amount like "89,90", or "" when blank.
	"""
	if isinstance(value, (int, float)) and not isinstance(value, bool):
		return format_brl(float(value))
	return cell_text(value)


#============================================
def lookup_field(row: dict, field: str):
	"""
	Find a record field in a raw row by any of its header aliases.

	Args:
		row: Raw row keyed by original headers.
		field: Record field name.

	Returns:
		The first non-blank aliased value, or None.
	"""
	aliases = HEADER_ALIASES[field]
	normalized = {normalize_header(key): value for key, value in row.items()}
	for alias in aliases:
		value = normalized.get(alias)
		if value is not None and cell_text(value) != "":
			return value
	return None


#============================================
def is_blank_row(row: dict) -> bool:
	return all(cell_text(value) == "" for value in row.values())


#============================================
def map_row(row: dict, record_id: int) -> SalesRecord:
	"""
	Map one raw row to a SalesRecord.

	Args:
		row: Raw row keyed by original headers.
		record_id: Id for the new record.

	Returns:
		SalesRecord.

	Raises:
		ValidationError: When a required field is missing or a price is not a number.
	"""
	missing = [
		FIELD_LABELS[field] for field in REQUIRED_FIELDS
		if lookup_field(row, field) is None
	]
	if missing:
		raise ValidationError("missing " + ", ".join(missing))

	price_from = amount_text(lookup_field(row, "price_from"))
	price_to = amount_text(lookup_field(row, "price_to"))
	for label, value in (("PriceFrom", price_from), ("PriceTo", price_to)):
		if not is_decimal_text(value):
			raise ValidationError(f"{label} is not a number: {value!r}")

	installment_value = amount_text(lookup_field(row, "installment_value"))
	if not is_decimal_text(installment_value):
		installment_value = DEFAULT_INSTALLMENT_VALUE
	qr_link = cell_text(lookup_field(row, "qr_link")) or DEFAULT_QR_LINK

	return SalesRecord(
		id=record_id,
		product_name=cell_text(lookup_field(row, "product_name")),
		sku=cell_text(lookup_field(row, "sku")),
		price_from=price_from,
		price_to=price_to,
		barcode=cell_text(lookup_field(row, "barcode")),
		installment_value=installment_value,
		installment_count=coerce_positive_int(
			lookup_field(row, "installment_count"),
			DEFAULT_INSTALLMENT_COUNT,
		),
		qr_link=qr_link,
		quantity=coerce_positive_int(lookup_field(row, "quantity"), DEFAULT_QUANTITY),
	)


#============================================
def map_rows(
	rows: list[dict],
	id_source: RecordIdSource | None = None,
) -> tuple[list[SalesRecord], list[RowError]]:
	"""
	Map spreadsheet rows into sales records, isolating bad rows.

	Blank rows are skipped without an error but still count toward row
	numbers, so each error points at the line the user sees.

	Args:
		rows: Raw data rows in sheet order, header excluded.
		id_source: Record id source; a fresh one is used when None.

	Returns:
		Tuple of (records in input order, row errors).
	"""
	if id_source is None:
		id_source = RecordIdSource()
	records: list[SalesRecord] = []
	errors: list[RowError] = []
	for position, row in enumerate(rows, start=1):
		if is_blank_row(row):
			continue
		row_number = position + HEADER_ROW_OFFSET
		try:
			record = map_row(row, id_source.next_id())
		except ValidationError as err:
			errors.append(RowError(row_number=row_number, reason=str(err)))
			continue
		records.append(record)
	return records, errors


#============================================
def read_rows(path: pathlib.Path, sheet_name: str | None = None) -> list[dict]:
	"""
	Read data rows from an .xlsx or .csv file.

	Row 1 holds headers. Trailing blank rows are dropped; blank rows in
	the middle are kept so row numbers stay aligned with the sheet.

	Args:
		path: Spreadsheet path.
		sheet_name: Optional sheet name (first sheet when None).

	Returns:
		List of row dicts keyed by the original headers.
	"""
	path = pathlib.Path(path)
	if not path.exists():
		raise FileNotFoundError(f"Spreadsheet not found: {path}")
	if path.suffix.lower() == ".csv":
		with path.open("r", encoding="utf-8-sig", newline="") as handle:
			rows = [dict(row) for row in csv.DictReader(handle)]
	else:
		rows = read_workbook_rows(path, sheet_name)
	while rows and is_blank_row(rows[-1]):
		rows.pop()
	return rows


#============================================
def read_workbook_rows(path: pathlib.Path, sheet_name: str | None) -> list[dict]:
	"""
	Read data rows from a workbook with openpyxl.

	Args:
		path: Workbook path.
		sheet_name: Optional sheet name.

	Returns:
		List of row dicts.
	"""
	workbook = openpyxl.load_workbook(path, data_only=True, read_only=True)
	try:
		sheet = workbook[sheet_name] if sheet_name else workbook.worksheets[0]
		values = sheet.iter_rows(values_only=True)
		header_cells = next(values, None)
		if header_cells is None:
			return []
		headers = [
			str(cell).strip() if cell is not None else f"col_{index}"
			for index, cell in enumerate(header_cells, start=1)
		]
		rows: list[dict] = []
		for cells in values:
			rows.append({header: value for header, value in zip(headers, cells)})
	finally:
		workbook.close()
	return rows


#============================================
def write_template(path: pathlib.Path) -> pathlib.Path:
	"""
	Write the import template workbook with one example row.

	Args:
		path: Output .xlsx path.

	Returns:
		The written path.
	"""
	path = pathlib.Path(path)
	workbook = openpyxl.Workbook()
	sheet = workbook.active
	sheet.title = TEMPLATE_SHEET_NAME
	sheet.append(list(TEMPLATE_ROW.keys()))
	sheet.append(list(TEMPLATE_ROW.values()))
	workbook.save(path)
	return path
