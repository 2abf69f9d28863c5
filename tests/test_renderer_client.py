import pytest
import requests

import zpl_label_exporter as zle
import zpl_label_exporter.cancel
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.renderer

import label_doubles


#============================================
def build_client(responses: list, requests_per_second: float = 3.0):
	clock = label_doubles.FakeClock()
	session = label_doubles.FakeSession(responses, clock=clock)
	config = zle.config.RendererConfig(requests_per_second=requests_per_second, timeout_seconds=5.0)
	limiter = zle.renderer.RateLimiter(config.min_interval, clock=clock, sleep=clock.sleep)
	client = zle.renderer.LabelaryClient(config, session=session, limiter=limiter)
	return client, session, clock


#============================================
def test_calls_never_closer_than_min_interval() -> None:
	"""
	Successive requests are spaced by at least 1 / requests_per_second.
	"""
	responses = [label_doubles.FakeResponse(200, content=b"%PDF") for _ in range(6)]
	client, session, clock = build_client(responses, requests_per_second=3.0)
	for _ in range(6):
		client.render("^XA^XZ")
	times = [call["time"] for call in session.calls]
	gaps = [later - earlier for earlier, later in zip(times, times[1:])]
	assert len(gaps) == 5
	assert min(gaps) >= (1.0 / 3.0) - 1e-9
	# the first call does not wait
	assert len(clock.sleeps) == 5


#============================================
def test_no_wait_when_calls_are_already_spaced() -> None:
	responses = [label_doubles.FakeResponse(200, content=b"%PDF") for _ in range(2)]
	client, session, clock = build_client(responses)
	client.render("^XA^XZ")
	clock.now += 5.0
	client.render("^XA^XZ")
	assert clock.sleeps == []


#============================================
def test_request_shape() -> None:
	client, session, _clock = build_client([label_doubles.FakeResponse(200, content=b"%PDF-1.4")])
	result = client.render("^XA^FDolá^FS^XZ")
	assert result == b"%PDF-1.4"
	call = session.calls[0]
	assert call["method"] == "POST"
	assert call["url"] == "http://api.labelary.com/v1/printers/8dpmm/labels/4x6/"
	assert call["headers"]["Accept"] == "application/pdf"
	assert call["data"] == "^XA^FDolá^FS^XZ".encode("utf-8")
	assert call["timeout"] == 5.0


#============================================
def test_non_success_status_raises_render_failure() -> None:
	client, _session, _clock = build_client([label_doubles.FakeResponse(429, text="Too many requests")])
	with pytest.raises(zle.errors.RenderFailure) as excinfo:
		client.render("^XA^XZ")
	assert excinfo.value.status_code == 429
	assert "Too many requests" in excinfo.value.message


#============================================
def test_timeout_raises_render_failure() -> None:
	client, _session, _clock = build_client([requests.Timeout("slow")])
	with pytest.raises(zle.errors.RenderFailure) as excinfo:
		client.render("^XA^XZ")
	assert excinfo.value.status_code is None
	assert "timed out" in excinfo.value.message


#============================================
def test_connection_error_raises_render_failure() -> None:
	client, _session, _clock = build_client([requests.ConnectionError("refused")])
	with pytest.raises(zle.errors.RenderFailure):
		client.render("^XA^XZ")


#============================================
def test_cancel_during_wait_skips_request() -> None:
	responses = [label_doubles.FakeResponse(200, content=b"%PDF") for _ in range(2)]
	client, session, _clock = build_client(responses)
	cancel = zle.cancel.CancelToken()
	client.render("^XA^XZ", cancel)
	cancel.cancel()
	with pytest.raises(zle.errors.ExportCancelled):
		client.render("^XA^XZ", cancel)
	assert len(session.calls) == 1


#============================================
def test_endpoint_formats_fractional_sizes() -> None:
	config = zle.config.RendererConfig(base_url="http://render.local/v1/printers/", label_width_in=3.93701, label_height_in=2.0)
	assert config.endpoint == "http://render.local/v1/printers/8dpmm/labels/3.937x2/"
	assert zle.config.RendererConfig(requests_per_second=4.0).min_interval == 0.25


#============================================
@pytest.mark.parametrize("requests_per_second", [0, -1.0])
def test_rate_ceiling_must_be_positive(requests_per_second: float) -> None:
	with pytest.raises(zle.errors.ValidationError):
		zle.config.RendererConfig(requests_per_second=requests_per_second)
