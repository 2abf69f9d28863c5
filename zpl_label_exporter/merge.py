"""
Structural concatenation of rendered PDF page streams.
"""

# Standard Library
import io

# PIP3 modules
import pypdf
import pypdf.errors

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.errors


MergeError = zle.errors.MergeError


#============================================
def read_document(page_bytes: bytes, position: int) -> pypdf.PdfReader:
	"""
	Load one rendered page stream as a standalone PDF.

	Args:
		page_bytes: PDF bytes returned by the renderer.
		position: Position in the merge input, for error messages.

	Returns:
		PdfReader.

	Raises:
		MergeError: When the bytes are not a readable PDF.
	"""
	if not page_bytes:
		raise MergeError(f"empty page stream at position {position}")
	try:
		reader = pypdf.PdfReader(io.BytesIO(page_bytes))
		# force page tree parsing so malformed input fails here
		len(reader.pages)
	except (pypdf.errors.PyPdfError, ValueError, KeyError, TypeError) as err:
		raise MergeError(f"unreadable page stream at position {position}: {err}") from err
	return reader


#============================================
def merge_pages(page_streams: list[bytes]) -> bytes:
	"""
	Copy every page of every stream, in order, into one document.

	Pages are appended unchanged; nothing is re-laid out.

	Args:
		page_streams: Ordered PDF byte strings.

	Returns:
		Serialized merged PDF.
	"""
	writer = pypdf.PdfWriter()
	for position, page_bytes in enumerate(page_streams):
		reader = read_document(page_bytes, position)
		for page in reader.pages:
			writer.add_page(page)
	buffer = io.BytesIO()
	writer.write(buffer)
	return buffer.getvalue()


#============================================
def count_pages(document_bytes: bytes) -> int:
	"""
	Count the pages in a PDF document.

	Args:
		document_bytes: PDF bytes.

	Returns:
		Page count.
	"""
	return len(read_document(document_bytes, 0).pages)
