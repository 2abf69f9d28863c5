import pytest

import zpl_label_exporter as zle
import zpl_label_exporter.errors
import zpl_label_exporter.merge

import label_doubles


#============================================
def test_merge_keeps_every_page_in_order() -> None:
	streams = [
		label_doubles.build_pdf(1, text="alpha"),
		label_doubles.build_pdf(2, text="beta"),
		label_doubles.build_pdf(1, text="gamma"),
	]
	document = zle.merge.merge_pages(streams)
	assert zle.merge.count_pages(document) == 4
	reader = zle.merge.read_document(document, 0)
	texts = [page.extract_text() for page in reader.pages]
	assert "alpha 1" in texts[0]
	assert "beta 1" in texts[1]
	assert "beta 2" in texts[2]
	assert "gamma 1" in texts[3]


#============================================
def test_merge_is_associative_in_page_count() -> None:
	a = label_doubles.build_pdf(1, text="a")
	b = label_doubles.build_pdf(2, text="b")
	c = label_doubles.build_pdf(1, text="c")
	nested = zle.merge.merge_pages([zle.merge.merge_pages([a, b]), c])
	flat = zle.merge.merge_pages([a, b, c])
	assert zle.merge.count_pages(nested) == zle.merge.count_pages(flat) == 4


#============================================
def test_merge_rejects_malformed_stream() -> None:
	with pytest.raises(zle.errors.MergeError):
		zle.merge.merge_pages([label_doubles.build_pdf(1), b"this is not a pdf"])


#============================================
def test_merge_rejects_empty_stream() -> None:
	with pytest.raises(zle.errors.MergeError):
		zle.merge.merge_pages([b""])
