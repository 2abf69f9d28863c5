"""
Commerce catalog lookup by SKU.
"""

# Standard Library
import dataclasses

# PIP3 modules
import requests

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.records


CatalogConfig = zle.config.CatalogConfig
CatalogProxyError = zle.errors.CatalogProxyError
CatalogNotFoundError = zle.errors.CatalogNotFoundError
SalesRecord = zle.records.SalesRecord
format_brl = zle.records.format_brl
parse_brl_amount = zle.records.parse_brl_amount
is_decimal_text = zle.records.is_decimal_text

CATALOG_MARKDOWN_FACTOR = zle.config.CATALOG_MARKDOWN_FACTOR
CATALOG_INSTALLMENT_COUNT = zle.config.CATALOG_INSTALLMENT_COUNT
CATALOG_FALLBACK_NAME = zle.config.CATALOG_FALLBACK_NAME
CATALOG_FALLBACK_EAN = zle.config.CATALOG_FALLBACK_EAN


@dataclasses.dataclass(frozen=True)
class CatalogProduct:
	sku: str
	name: str
	price_from: float
	price_to: float
	ean: str
	url: str
	installment_value: float
	installment_count: int


#============================================
def first_value(data: dict, *keys):
	"""
	Return the first truthy value among the given keys.
	"""
	for key in keys:
		value = data.get(key)
		if value:
			return value
	return None


#============================================
def to_amount(value) -> float:
	"""
	Parse an upstream price, accepting numbers and "12,5" style text.

	Raises:
		ValueError: The value is not an amount.
	"""
	if value is None or value == "":
		return 0.0
	if isinstance(value, bool):
		raise ValueError(f"not an amount: {value!r}")
	if isinstance(value, (int, float)):
		return float(value)
	if not is_decimal_text(str(value)):
		raise ValueError(f"not an amount: {value!r}")
	return parse_brl_amount(value)


#============================================
def map_upstream_product(data: dict, sku: str) -> CatalogProduct:
	"""
	Reshape an upstream product payload.

	The first price table, when it carries a "to" price, replaces the
	product's own prices. The shown "to" price is marked down by
	CATALOG_MARKDOWN_FACTOR; installments are computed on the price before
	the markdown.

	Args:
		data: Upstream JSON object.
		sku: Requested SKU, used when the payload has none.

	Returns:
		CatalogProduct.
	"""
	price_from = to_amount(first_value(data, "precoDe", "priceFrom"))
	price_to = to_amount(first_value(data, "precoPor", "priceTo"))
	tables = data.get("tabelasPreco")
	if isinstance(tables, list) and tables:
		table = tables[0]
		if isinstance(table, dict) and table.get("precoPor") is not None:
			price_from = to_amount(table.get("precoDe"))
			price_to = to_amount(table.get("precoPor"))
	return CatalogProduct(
		sku=str(first_value(data, "sku", "referencia") or sku),
		name=str(first_value(data, "nome", "productName") or CATALOG_FALLBACK_NAME),
		price_from=round(price_from, 2),
		price_to=round(price_to * CATALOG_MARKDOWN_FACTOR, 2),
		ean=str(first_value(data, "ean", "barcode", "gtin") or CATALOG_FALLBACK_EAN),
		url=str(first_value(data, "urlProduto", "productUrl") or ""),
		installment_value=round(price_to / CATALOG_INSTALLMENT_COUNT, 2),
		installment_count=CATALOG_INSTALLMENT_COUNT,
	)


#============================================
def product_to_record(product: CatalogProduct, record_id: int, quantity: int = 1) -> SalesRecord:
	"""
	Turn a looked-up product into a sales record with display amounts.

	Args:
		product: Catalog product.
		record_id: Id for the new record.
		quantity: Number of labels.

	Returns:
		SalesRecord.
	"""
	return SalesRecord(
		id=record_id,
		product_name=product.name,
		sku=product.sku,
		price_from=format_brl(product.price_from),
		price_to=format_brl(product.price_to),
		barcode=product.ean,
		installment_value=format_brl(product.installment_value),
		installment_count=product.installment_count,
		qr_link=product.url,
		quantity=quantity,
	)


class CatalogClient:
	"""
	Explicit catalog client; build one and pass it to whatever needs it.
	"""

	def __init__(self, config: CatalogConfig, session: requests.Session | None = None):
		self.config = config
		self.session = session or requests.Session()

	def get_product(self, sku: str) -> CatalogProduct:
		"""
		Look up a product by SKU.

		Args:
			sku: Product SKU.

		Returns:
			CatalogProduct.

		Raises:
			CatalogNotFoundError: Upstream 404 or empty payload.
			CatalogProxyError: Any other failure, with the upstream status when known.
		"""
		sku = (sku or "").strip()
		if not sku:
			raise CatalogProxyError("SKU is required", status_code=400)
		if not self.config.token:
			raise CatalogProxyError("catalog token is not configured (WAKE_TOKEN)")
		url = f"{self.config.base_url.rstrip('/')}/produtos/{sku}"
		headers = {
			"Authorization": f"Basic {self.config.token}",
			"Content-Type": "application/json",
		}
		params = {"tipoIdentificador": "Sku", "camposAdicionais": "TabelaPreco"}
		try:
			response = self.session.get(url, headers=headers, params=params, timeout=self.config.timeout_seconds)
		except requests.RequestException as err:
			raise CatalogProxyError(f"catalog request failed: {err}") from err
		if response.status_code == 404:
			raise CatalogNotFoundError(f"product not found: {sku}", status_code=404)
		if not 200 <= response.status_code < 300:
			raise CatalogProxyError(f"catalog error: HTTP {response.status_code}", status_code=response.status_code)
		try:
			data = response.json()
		except ValueError as err:
			raise CatalogProxyError("catalog returned invalid JSON", status_code=response.status_code) from err
		if not data or not isinstance(data, dict):
			raise CatalogNotFoundError(f"product not found: {sku}", status_code=404)
		try:
			return map_upstream_product(data, sku)
		except (ValueError, TypeError) as err:
			raise CatalogProxyError(f"catalog returned an unreadable product: {err}", status_code=response.status_code) from err
