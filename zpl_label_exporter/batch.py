"""
Batch export: expand records into label units, chunk them, render each
chunk sequentially, merge it, and save it.
"""

# Standard Library
import dataclasses
import enum

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.cancel
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.export
import zpl_label_exporter.merge
import zpl_label_exporter.records
import zpl_label_exporter.zpl


CancelToken = zle.cancel.CancelToken
ExportConfig = zle.config.ExportConfig
ErrorPolicy = zle.config.ErrorPolicy
LabelUnit = zle.records.LabelUnit
RenderError = zle.records.RenderError
RenderResult = zle.records.RenderResult
RenderFailure = zle.errors.RenderFailure
MergeError = zle.errors.MergeError
ExportHalted = zle.errors.ExportHalted
ExportCancelled = zle.errors.ExportCancelled
interruptible_sleep = zle.cancel.interruptible_sleep


class ExportState(enum.Enum):
	IDLE = "idle"
	EXPANDING = "expanding"
	CHUNKING = "chunking"
	RENDERING = "rendering"
	MERGING = "merging"
	SAVING = "saving"
	DONE = "done"
	FAILED = "failed"
	CANCELLED = "cancelled"


class ProgressObserver:
	"""
	Receives export progress; the default implementation ignores it.
	"""

	def on_state(self, state: ExportState, chunk_index: int | None) -> None:
		pass

	def on_progress(self, unit_index: int, units_in_chunk: int, chunk_index: int, total_chunks: int) -> None:
		"""
		Called after each unit render attempt.

		Args:
			unit_index: 1-based unit position within the chunk.
			units_in_chunk: Units in the chunk.
			chunk_index: 1-based chunk index.
			total_chunks: Number of chunks.
		"""


@dataclasses.dataclass
class ChunkReport:
	index: int
	unit_count: int
	rendered: int = 0
	file_name: str | None = None
	saved_path: str | None = None
	render_errors: list[RenderError] = dataclasses.field(default_factory=list)
	merge_error: str | None = None
	save_error: str | None = None

	@property
	def saved(self) -> bool:
		return self.saved_path is not None


@dataclasses.dataclass
class ExportReport:
	total_units: int
	total_chunks: int
	chunks: list[ChunkReport] = dataclasses.field(default_factory=list)
	state: ExportState = ExportState.IDLE

	@property
	def render_errors(self) -> list[RenderError]:
		return [error for chunk in self.chunks for error in chunk.render_errors]

	@property
	def saved_paths(self) -> list[str]:
		return [chunk.saved_path for chunk in self.chunks if chunk.saved]

	@property
	def rendered_units(self) -> int:
		return sum(chunk.rendered for chunk in self.chunks)


#============================================
def expand_units(records) -> list[LabelUnit]:
	"""
	Expand records into label units, all copies of a record before the next.

	Args:
		records: Label records in export order.

	Returns:
		LabelUnits with 1-based indexes.
	"""
	units: list[LabelUnit] = []
	for record in records:
		program = zle.zpl.encode(record)
		for _ in range(record.quantity):
			units.append(LabelUnit(index=len(units) + 1, record=record, program=program))
	return units


#============================================
def chunk_units(units: list, size: int) -> list[list]:
	"""
	Split units into ordered chunks of at most `size`.

	Args:
		units: Label units.
		size: Chunk bound.

	Returns:
		List of chunks; empty when there are no units.
	"""
	if size < 1:
		raise ValueError(f"chunk size must be at least 1: {size}")
	return [list(units[start:start + size]) for start in range(0, len(units), size)]


class BatchExporter:
	"""
	Drive one export at a time against a rate-limited renderer.

	Args:
		client: Object with render(program, cancel) -> bytes.
		sink: Object with save(document_bytes, file_name) -> path.
		config: Export configuration.
		observer: Progress observer.
		sleep: Delay function (seconds, cancel) used for the chunk pause.
	"""

	def __init__(self, client, sink, config: ExportConfig | None = None, observer: ProgressObserver | None = None, sleep=interruptible_sleep):
		self.client = client
		self.sink = sink
		self.config = config or ExportConfig()
		self.observer = observer or ProgressObserver()
		self._sleep = sleep
		self.state = ExportState.IDLE

	def _enter(self, state: ExportState, chunk_index: int | None = None) -> None:
		self.state = state
		self.observer.on_state(state, chunk_index)

	def run(self, records, cancel: CancelToken | None = None) -> ExportReport:
		"""
		Export records into one document per chunk.

		Args:
			records: Label records; the sequence is copied before work starts.
			cancel: Optional cancellation token.

		Returns:
			ExportReport listing saved files and failed units.

		Raises:
			ExportHalted: First render error under the fail-fast policy.
			ExportCancelled: Cancelled; the attached report keeps saved chunks.
		"""
		snapshot = tuple(records)
		self._enter(ExportState.EXPANDING)
		units = expand_units(snapshot)
		self._enter(ExportState.CHUNKING)
		chunks = chunk_units(units, self.config.chunk_size)
		report = ExportReport(total_units=len(units), total_chunks=len(chunks))
		try:
			for chunk_index, chunk in enumerate(chunks, start=1):
				if chunk_index > 1:
					self._sleep(self.config.chunk_pause_seconds, cancel)
				self._check_cancel(cancel)
				chunk_report = ChunkReport(index=chunk_index, unit_count=len(chunk))
				report.chunks.append(chunk_report)
				self._export_chunk(chunk, chunk_report, len(chunks), report, cancel)
			self._enter(ExportState.DONE)
			report.state = ExportState.DONE
		except ExportCancelled as err:
			self._enter(ExportState.CANCELLED)
			report.state = ExportState.CANCELLED
			raise ExportCancelled(report) from err
		except ExportHalted:
			report.state = ExportState.FAILED
			raise
		finally:
			self.state = ExportState.IDLE
		return report

	def _check_cancel(self, cancel: CancelToken | None) -> None:
		if cancel is not None and cancel.cancelled:
			raise ExportCancelled()

	def render_chunk(self, chunk: list[LabelUnit], chunk_index: int, total_chunks: int, cancel: CancelToken | None = None) -> list[RenderResult]:
		"""
		Render every unit of a chunk in order, one request at a time.

		Args:
			chunk: Units to render.
			chunk_index: 1-based chunk index.
			total_chunks: Number of chunks.
			cancel: Optional cancellation token.

		Returns:
			One RenderResult per unit, in chunk order.
		"""
		self._enter(ExportState.RENDERING, chunk_index)
		results: list[RenderResult] = []
		for position, unit in enumerate(chunk, start=1):
			self._check_cancel(cancel)
			try:
				page_bytes = self.client.render(unit.program, cancel)
			except RenderFailure as err:
				error = RenderError(unit_index=unit.index, message=err.message, status_code=err.status_code)
				if self.config.error_policy is ErrorPolicy.FAIL_FAST:
					self._enter(ExportState.FAILED, chunk_index)
					raise ExportHalted(f"label {unit.index}: {err.message}", None) from err
				results.append(RenderResult(unit_index=unit.index, error=error))
			else:
				results.append(RenderResult(unit_index=unit.index, page_bytes=page_bytes))
			self.observer.on_progress(position, len(chunk), chunk_index, total_chunks)
		return results

	def _export_chunk(self, chunk: list[LabelUnit], chunk_report: ChunkReport, total_chunks: int, report: ExportReport, cancel: CancelToken | None) -> None:
		try:
			results = self.render_chunk(chunk, chunk_report.index, total_chunks, cancel)
		except ExportHalted as err:
			err.report = report
			raise
		chunk_report.render_errors = [result.error for result in results if result.error is not None]
		pages = [result.page_bytes for result in results if result.ok]
		chunk_report.rendered = len(pages)
		if not pages:
			return
		self._enter(ExportState.MERGING, chunk_report.index)
		try:
			document = zle.merge.merge_pages(pages)
		except MergeError as err:
			chunk_report.merge_error = str(err)
			return
		self._enter(ExportState.SAVING, chunk_report.index)
		file_name = zle.export.build_file_name(
			self.config.base_name,
			chunk_report.index,
			total_chunks,
			self.config.extension,
		)
		chunk_report.file_name = file_name
		try:
			saved_path = self.sink.save(document, file_name)
		except OSError as err:
			chunk_report.save_error = str(err)
			return
		chunk_report.saved_path = str(saved_path)


#============================================
def summarize_report(report: ExportReport, limit: int = zle.config.SUMMARY_REASON_LIMIT) -> list[str]:
	"""
	Build user-facing summary lines for an export.

	Args:
		report: Export report.
		limit: Maximum number of failure reasons listed.

	Returns:
		Summary lines.
	"""
	lines = [
		f"Labels rendered: {report.rendered_units}/{report.total_units}",
		f"Files saved: {len(report.saved_paths)}/{report.total_chunks}",
	]
	errors = report.render_errors
	if errors:
		lines.append(f"Render errors: {len(errors)}")
		for error in errors[:limit]:
			lines.append(f"  label {error.unit_index}: {error.message}")
		if len(errors) > limit:
			lines.append(f"  ... and {len(errors) - limit} more")
	for chunk in report.chunks:
		if chunk.merge_error:
			lines.append(f"Chunk {chunk.index} not saved: {chunk.merge_error}")
		if chunk.save_error:
			lines.append(f"Chunk {chunk.index} not saved: {chunk.save_error}")
	return lines
