"""
Cancellation token shared by the export loop and its waits.
"""

# Standard Library
import threading
import time


class CancelToken:
	"""
	Thread-safe flag that also wakes any wait in progress.
	"""

	def __init__(self):
		self._event = threading.Event()

	def cancel(self) -> None:
		self._event.set()

	@property
	def cancelled(self) -> bool:
		return self._event.is_set()

	def wait(self, seconds: float) -> bool:
		"""
		Block for up to `seconds`, returning early on cancel.

		Returns:
			True when the token was cancelled.
		"""
		return self._event.wait(max(0.0, seconds))


#============================================
def interruptible_sleep(seconds: float, cancel: CancelToken | None = None) -> None:
	"""
	Sleep without busy waiting, cut short when the token is cancelled.

	Args:
		seconds: Delay length.
		cancel: Optional cancellation token.
	"""
	if seconds <= 0:
		return
	if cancel is None:
		time.sleep(seconds)
		return
	cancel.wait(seconds)
