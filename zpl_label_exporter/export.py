"""
Output file naming and saving.
"""

# Standard Library
import pathlib

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.config


DEFAULT_EXTENSION = zle.config.DEFAULT_EXTENSION


#============================================
def sanitize_token(value: str) -> str:
	"""
	Sanitize a string for filenames.

	Args:
		value: Input string.

	Returns:
		Sanitized string.
	"""
	result: list[str] = []
	for char in value:
		if char.isalnum() or char in "-_":
			result.append(char)
		else:
			result.append("_")
	sanitized = "".join(result).strip("_")
	if not sanitized:
		return "etiquetas"
	return sanitized


#============================================
def build_file_name(base_name: str, chunk_index: int, total_chunks: int, extension: str = DEFAULT_EXTENSION) -> str:
	"""
	Name the output file for one chunk.

	Args:
		base_name: Base file name without extension.
		chunk_index: 1-based chunk index.
		total_chunks: Number of chunks in the export.
		extension: File extension without the dot.

	Returns:
		"{base}.{ext}" for a single chunk, else "{base}_part_{index}.{ext}".
	"""
	base = sanitize_token(base_name)
	if total_chunks <= 1:
		return f"{base}.{extension}"
	return f"{base}_part_{chunk_index}.{extension}"


class DirectorySink:
	"""
	Save each document into an output directory.
	"""

	def __init__(self, output_dir: pathlib.Path):
		self.output_dir = pathlib.Path(output_dir)
		self.saved: list[pathlib.Path] = []

	def save(self, document_bytes: bytes, file_name: str) -> pathlib.Path:
		self.output_dir.mkdir(parents=True, exist_ok=True)
		path = self.output_dir / file_name
		path.write_bytes(document_bytes)
		self.saved.append(path)
		return path
