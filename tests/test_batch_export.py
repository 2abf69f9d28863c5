import pytest

import zpl_label_exporter as zle
import zpl_label_exporter.batch
import zpl_label_exporter.cancel
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.merge
import zpl_label_exporter.records

import label_doubles


ExportState = zle.batch.ExportState


#============================================
def build_sales(record_id: int, sku: str, quantity: int = 1) -> zle.records.SalesRecord:
	return zle.records.SalesRecord(
		id=record_id,
		product_name=f"Produto {sku}",
		sku=sku,
		price_from="10,00",
		price_to="9,00",
		barcode="123456",
		quantity=quantity,
	)


#============================================
def build_logistic(record_id: int) -> zle.records.LogisticRecord:
	return zle.records.LogisticRecord(
		id=record_id,
		acelerato=str(1000 + record_id),
		grau=3,
		problem_kind=zle.records.ProblemKind.DEFEITO,
	)


#============================================
def build_exporter(renderer=None, chunk_size: int = 50, policy=zle.config.ErrorPolicy.ISOLATE):
	renderer = renderer or label_doubles.FakeRenderer()
	sink = label_doubles.MemorySink()
	observer = label_doubles.RecordingObserver()
	clock = label_doubles.FakeClock()
	config = zle.config.ExportConfig(chunk_size=chunk_size, chunk_pause_seconds=1.5, base_name="etiquetas", error_policy=policy)
	exporter = zle.batch.BatchExporter(renderer, sink, config, observer, sleep=clock.sleep)
	return exporter, renderer, sink, observer, clock


#============================================
def test_expansion_repeats_quantity_in_order() -> None:
	"""
	All copies of a record come before the next record.
	"""
	records = [build_sales(1, "A", quantity=3), build_logistic(2), build_sales(3, "B", quantity=2)]
	units = zle.batch.expand_units(records)
	assert [unit.record.id for unit in units] == [1, 1, 1, 2, 3, 3]
	assert [unit.index for unit in units] == [1, 2, 3, 4, 5, 6]
	assert len({unit.program for unit in units[:3]}) == 1


#============================================
@pytest.mark.parametrize("count, size", [(0, 50), (1, 50), (50, 50), (51, 50), (120, 50), (7, 3)])
def test_chunking_is_bounded_and_order_preserving(count: int, size: int) -> None:
	units = list(range(count))
	chunks = zle.batch.chunk_units(units, size)
	assert len(chunks) == -(-count // size)
	assert all(len(chunk) <= size for chunk in chunks)
	assert [unit for chunk in chunks for unit in chunk] == units


#============================================
def test_chunk_size_must_be_positive() -> None:
	with pytest.raises(ValueError):
		zle.batch.chunk_units([1, 2], 0)


#============================================
def test_single_record_quantity_two_yields_one_file() -> None:
	exporter, renderer, sink, _observer, _clock = build_exporter()
	report = exporter.run([build_sales(1, "X", quantity=2)])
	assert report.total_units == 2
	assert report.total_chunks == 1
	assert len(renderer.programs) == 2
	assert renderer.programs[0] == renderer.programs[1]
	assert [name for name, _data in sink.saved] == ["etiquetas.pdf"]
	assert zle.merge.count_pages(sink.saved[0][1]) == 2
	assert report.state is ExportState.DONE
	assert exporter.state is ExportState.IDLE


#============================================
def test_120_units_make_three_ordered_files() -> None:
	exporter, renderer, sink, observer, clock = build_exporter()
	records = [build_sales(index, f"S{index}") for index in range(120)]
	report = exporter.run(records)
	assert [chunk.unit_count for chunk in report.chunks] == [50, 50, 20]
	assert [name for name, _data in sink.saved] == [
		"etiquetas_part_1.pdf",
		"etiquetas_part_2.pdf",
		"etiquetas_part_3.pdf",
	]
	assert [zle.merge.count_pages(data) for _name, data in sink.saved] == [50, 50, 20]
	# one pause between each pair of chunks
	assert clock.sleeps == [1.5, 1.5]
	assert len(renderer.programs) == 120


#============================================
def test_progress_is_monotonic() -> None:
	exporter, _renderer, _sink, observer, _clock = build_exporter(chunk_size=2)
	exporter.run([build_sales(1, "A", quantity=5)])
	assert observer.progress == [
		(1, 2, 1, 3),
		(2, 2, 1, 3),
		(1, 2, 2, 3),
		(2, 2, 2, 3),
		(1, 1, 3, 3),
	]
	positions = [(chunk, unit) for unit, _total, chunk, _chunks in observer.progress]
	assert positions == sorted(positions)


#============================================
def test_state_sequence() -> None:
	exporter, _renderer, _sink, observer, _clock = build_exporter(chunk_size=1)
	exporter.run([build_logistic(1), build_logistic(2)])
	assert observer.states == [
		(ExportState.EXPANDING, None),
		(ExportState.CHUNKING, None),
		(ExportState.RENDERING, 1),
		(ExportState.MERGING, 1),
		(ExportState.SAVING, 1),
		(ExportState.RENDERING, 2),
		(ExportState.MERGING, 2),
		(ExportState.SAVING, 2),
		(ExportState.DONE, None),
	]


#============================================
def test_render_errors_are_isolated_per_unit() -> None:
	"""
	Failed units are reported; the rest of the chunk is still saved.
	"""
	renderer = label_doubles.FakeRenderer(fail_calls={2, 4})
	exporter, _renderer, sink, _observer, _clock = build_exporter(renderer=renderer)
	report = exporter.run([build_sales(index, f"S{index}") for index in range(5)])
	assert [error.unit_index for error in report.render_errors] == [2, 4]
	assert report.render_errors[0].status_code == 500
	assert report.rendered_units == 3
	assert len(sink.saved) == 1
	assert zle.merge.count_pages(sink.saved[0][1]) == 3
	summary = zle.batch.summarize_report(report)
	assert "Labels rendered: 3/5" in summary
	assert "Render errors: 2" in summary


#============================================
def test_chunk_with_no_rendered_units_is_not_saved() -> None:
	renderer = label_doubles.FakeRenderer(fail_calls={1, 2})
	exporter, _renderer, sink, _observer, _clock = build_exporter(renderer=renderer, chunk_size=2)
	report = exporter.run([build_sales(1, "A", quantity=3)])
	assert [name for name, _data in sink.saved] == ["etiquetas_part_2.pdf"]
	assert report.chunks[0].saved is False
	assert report.saved_paths == ["memory://etiquetas_part_2.pdf"]


#============================================
def test_fail_fast_halts_and_keeps_saved_chunks() -> None:
	renderer = label_doubles.FakeRenderer(fail_calls={3})
	exporter, _renderer, sink, _observer, _clock = build_exporter(
		renderer=renderer,
		chunk_size=2,
		policy=zle.config.ErrorPolicy.FAIL_FAST,
	)
	with pytest.raises(zle.errors.ExportHalted) as excinfo:
		exporter.run([build_sales(1, "A", quantity=6)])
	assert len(renderer.programs) == 3
	assert [name for name, _data in sink.saved] == ["etiquetas_part_1.pdf"]
	report = excinfo.value.report
	assert report.state is ExportState.FAILED
	assert report.saved_paths == ["memory://etiquetas_part_1.pdf"]
	assert exporter.state is ExportState.IDLE


#============================================
def test_merge_error_only_loses_its_chunk() -> None:
	class BadBytesRenderer(label_doubles.FakeRenderer):
		def render(self, program: str, cancel=None) -> bytes:
			data = super().render(program, cancel)
			if len(self.programs) == 1:
				return b"garbage"
			return data

	exporter, _renderer, sink, _observer, _clock = build_exporter(renderer=BadBytesRenderer(), chunk_size=2)
	report = exporter.run([build_sales(1, "A", quantity=4)])
	assert report.chunks[0].merge_error is not None
	assert [name for name, _data in sink.saved] == ["etiquetas_part_2.pdf"]


#============================================
def test_cancel_mid_chunk_keeps_earlier_chunks() -> None:
	cancel = zle.cancel.CancelToken()

	def cancel_on_third(call_number: int) -> None:
		if call_number == 3:
			cancel.cancel()

	renderer = label_doubles.FakeRenderer(on_call=cancel_on_third)
	exporter, _renderer, sink, _observer, _clock = build_exporter(renderer=renderer, chunk_size=2)
	with pytest.raises(zle.errors.ExportCancelled) as excinfo:
		exporter.run([build_sales(1, "A", quantity=6)], cancel)
	assert len(renderer.programs) == 3
	assert [name for name, _data in sink.saved] == ["etiquetas_part_1.pdf"]
	assert excinfo.value.report.state is ExportState.CANCELLED
	assert exporter.state is ExportState.IDLE


#============================================
def test_export_uses_a_snapshot_of_records() -> None:
	records = [build_sales(1, "A"), build_sales(2, "B")]

	def mutate(call_number: int) -> None:
		records.append(build_sales(99, "LATE"))

	renderer = label_doubles.FakeRenderer(on_call=mutate)
	exporter, _renderer, _sink, _observer, _clock = build_exporter(renderer=renderer)
	report = exporter.run(records)
	assert report.total_units == 2
	assert len(renderer.programs) == 2


#============================================
def test_empty_export_saves_nothing() -> None:
	exporter, renderer, sink, _observer, _clock = build_exporter()
	report = exporter.run([])
	assert report.total_chunks == 0
	assert sink.saved == []
	assert renderer.programs == []
	assert report.state is ExportState.DONE


#============================================
def test_export_config_rejects_empty_chunks() -> None:
	with pytest.raises(zle.errors.ValidationError):
		zle.config.ExportConfig(chunk_size=0)
	with pytest.raises(zle.errors.ValidationError):
		zle.config.ExportConfig(chunk_pause_seconds=-1.0)


#============================================
def test_save_failure_only_loses_its_chunk() -> None:
	class FlakySink(label_doubles.MemorySink):
		def save(self, document_bytes: bytes, file_name: str) -> str:
			if file_name.endswith("_part_1.pdf"):
				raise OSError("disk full")
			return super().save(document_bytes, file_name)

	renderer = label_doubles.FakeRenderer()
	clock = label_doubles.FakeClock()
	config = zle.config.ExportConfig(chunk_size=2, chunk_pause_seconds=0.0, base_name="etiquetas")
	sink = FlakySink()
	exporter = zle.batch.BatchExporter(renderer, sink, config, sleep=clock.sleep)
	report = exporter.run([build_sales(1, "A", quantity=4)])
	assert report.chunks[0].save_error == "disk full"
	assert report.saved_paths == ["memory://etiquetas_part_2.pdf"]
	assert "Chunk 1 not saved: disk full" in zle.batch.summarize_report(report)
	assert exporter.state is ExportState.IDLE
