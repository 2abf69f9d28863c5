"""
Exception types raised across the export pipeline.
"""


class LabelExportError(Exception):
	"""
	Base class for label export failures.
	"""


class ValidationError(LabelExportError, ValueError):
	"""
	A record field is missing or out of range.
	"""


class RenderFailure(LabelExportError):
	"""
	The rendering service rejected or failed to answer one label program.
	"""

	def __init__(self, message: str, status_code: int | None = None):
		super().__init__(message)
		self.message = message
		self.status_code = status_code


class MergeError(LabelExportError):
	"""
	A rendered page stream could not be read as a PDF document.
	"""


class ExportHalted(LabelExportError):
	"""
	Fail-fast policy stopped the export at the first render error.
	"""

	def __init__(self, message: str, report):
		super().__init__(message)
		self.report = report


class ExportCancelled(LabelExportError):
	"""
	The export was cancelled; chunks saved before that point are kept.
	"""

	def __init__(self, report=None):
		super().__init__("export cancelled")
		self.report = report


class CatalogProxyError(LabelExportError):
	"""
	Catalog lookup failed; the upstream status is kept when known.
	"""

	def __init__(self, message: str, status_code: int | None = None):
		super().__init__(message)
		self.message = message
		self.status_code = status_code


class CatalogNotFoundError(CatalogProxyError):
	"""
	The catalog has no product for the requested SKU.
	"""
