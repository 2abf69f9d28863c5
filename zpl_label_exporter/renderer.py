"""
Client for the external ZPL rendering service.
"""

# Standard Library
import threading
import time

# PIP3 modules
import requests

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.cancel
import zpl_label_exporter.config
import zpl_label_exporter.errors


CancelToken = zle.cancel.CancelToken
RendererConfig = zle.config.RendererConfig
RenderFailure = zle.errors.RenderFailure
ExportCancelled = zle.errors.ExportCancelled
interruptible_sleep = zle.cancel.interruptible_sleep

ERROR_BODY_LIMIT = 200


class RateLimiter:
	"""
	Keep successive calls at least `min_interval` seconds apart.

	The clock and sleep functions are injectable so tests can run against
	a fake clock.
	"""

	def __init__(self, min_interval: float, clock=time.monotonic, sleep=interruptible_sleep):
		self.min_interval = min_interval
		self._clock = clock
		self._sleep = sleep
		self._last_call: float | None = None
		self._lock = threading.Lock()

	def acquire(self, cancel: CancelToken | None = None) -> bool:
		"""
		Wait until the next call is allowed.

		Args:
			cancel: Optional cancellation token honored during the wait.

		Returns:
			False when cancelled before the slot opened.
		"""
		with self._lock:
			if self._last_call is not None:
				remaining = self._last_call + self.min_interval - self._clock()
				if remaining > 0:
					self._sleep(remaining, cancel)
			if cancel is not None and cancel.cancelled:
				return False
			self._last_call = self._clock()
			return True


class LabelaryClient:
	"""
	Render one ZPL program per request into PDF bytes.

	Calls are serialized through a RateLimiter sized to the service's
	request ceiling; the service has no session and no batch mode is used.
	"""

	def __init__(
		self,
		config: RendererConfig | None = None,
		session: requests.Session | None = None,
		limiter: RateLimiter | None = None,
	):
		self.config = config or RendererConfig()
		self.session = session or requests.Session()
		self.limiter = limiter or RateLimiter(self.config.min_interval)

	def render(self, program: str, cancel: CancelToken | None = None) -> bytes:
		"""
		Render a label program.

		Args:
			program: ZPL program text.
			cancel: Optional cancellation token.

		Returns:
			PDF document bytes.

		Raises:
			RenderFailure: On a non-success status, timeout or connection error.
			ExportCancelled: When cancelled while waiting for a rate slot.
		"""
		if not self.limiter.acquire(cancel):
			raise ExportCancelled()
		headers = {
			"Accept": "application/pdf",
			"Content-Type": "application/x-www-form-urlencoded",
		}
		try:
			response = self.session.post(
				self.config.endpoint,
				data=program.encode("utf-8"),
				headers=headers,
				timeout=self.config.timeout_seconds,
			)
		except requests.Timeout as err:
			raise RenderFailure(f"timed out after {self.config.timeout_seconds:g}s") from err
		except requests.RequestException as err:
			raise RenderFailure(f"request failed: {err}") from err
		if response.status_code != 200:
			body = (response.text or "").strip()[:ERROR_BODY_LIMIT]
			message = f"HTTP {response.status_code}"
			if body:
				message += f": {body}"
			raise RenderFailure(message, status_code=response.status_code)
		return response.content
