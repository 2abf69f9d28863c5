"""
In-memory label list for one working session.
"""

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.records


RecordIdSource = zle.records.RecordIdSource


class LabelSession:
	"""
	Ordered list of label records, newest first.

	Records are never mutated; an edit is a removal followed by an add.
	"""

	def __init__(self, id_source: RecordIdSource | None = None):
		self.id_source = id_source or RecordIdSource()
		self._records: list = []

	def __len__(self) -> int:
		return len(self._records)

	@property
	def records(self) -> tuple:
		return tuple(self._records)

	def add(self, record) -> None:
		self._records.insert(0, record)

	def add_many(self, records: list) -> None:
		"""
		Prepend an imported batch in one step, keeping its internal order.
		"""
		self._records = list(records) + self._records

	def remove(self, record_id: int) -> bool:
		before = len(self._records)
		self._records = [record for record in self._records if record.id != record_id]
		return len(self._records) != before

	def replace(self, record_id: int, record) -> None:
		"""
		Swap a record for an edited copy.

		Args:
			record_id: Id of the record being edited.
			record: New record; it goes to the top of the list.

		Raises:
			KeyError: When no record has that id.
		"""
		if not self.remove(record_id):
			raise KeyError(record_id)
		self.add(record)

	def clear(self) -> None:
		self._records = []

	def snapshot(self) -> tuple:
		"""
		Freeze the current list for an export; later edits do not affect it.
		"""
		return tuple(self._records)
