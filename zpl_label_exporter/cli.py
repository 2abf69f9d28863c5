"""
CLI entry points for ZPL label export.
"""

# Standard Library
import argparse
import os
import pathlib
import threading
import time

# PIP3 modules
import dotenv

# local repo modules
import zpl_label_exporter as zle
import zpl_label_exporter.batch
import zpl_label_exporter.cancel
import zpl_label_exporter.catalog
import zpl_label_exporter.config
import zpl_label_exporter.errors
import zpl_label_exporter.export
import zpl_label_exporter.records
import zpl_label_exporter.renderer
import zpl_label_exporter.session
import zpl_label_exporter.spreadsheet


RendererConfig = zle.config.RendererConfig
ExportConfig = zle.config.ExportConfig
CatalogConfig = zle.config.CatalogConfig
ErrorPolicy = zle.config.ErrorPolicy
ExportCancelled = zle.errors.ExportCancelled
ExportHalted = zle.errors.ExportHalted

DEFAULT_CHUNK_SIZE = zle.config.DEFAULT_CHUNK_SIZE
DEFAULT_CHUNK_PAUSE = zle.config.DEFAULT_CHUNK_PAUSE
DEFAULT_REQUESTS_PER_SECOND = zle.config.DEFAULT_REQUESTS_PER_SECOND
DEFAULT_RENDER_TIMEOUT = zle.config.DEFAULT_RENDER_TIMEOUT
DEFAULT_RENDERER_URL = zle.config.DEFAULT_RENDERER_URL
DEFAULT_CATALOG_URL = zle.config.DEFAULT_CATALOG_URL
PROGRESS_BAR_WIDTH = zle.config.PROGRESS_BAR_WIDTH
SUMMARY_REASON_LIMIT = zle.config.SUMMARY_REASON_LIMIT


#============================================
def print_progress(prefix: str, current: int, total: int) -> None:
	"""
	Print a simple progress bar.

	Args:
		prefix: Label text.
		current: Current count.
		total: Total count.
	"""
	if total <= 0:
		return
	percent = int(round((current / total) * 100.0))
	filled = int(round(PROGRESS_BAR_WIDTH * percent / 100.0))
	bar = "#" * filled + "-" * (PROGRESS_BAR_WIDTH - filled)
	print(f"{prefix} [{bar}] {current}/{total} ({percent}%)", end="\r")


class PrintProgressObserver(zle.batch.ProgressObserver):
	def on_progress(self, unit_index: int, units_in_chunk: int, chunk_index: int, total_chunks: int) -> None:
		print_progress(f"Chunk {chunk_index}/{total_chunks}", unit_index, units_in_chunk)
		if unit_index == units_in_chunk:
			print()


#============================================
def build_renderer_config(args: argparse.Namespace) -> RendererConfig:
	"""
	Build renderer config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		RendererConfig.
	"""
	return RendererConfig(
		base_url=args.renderer_url,
		requests_per_second=args.requests_per_second,
		timeout_seconds=args.timeout,
	)


#============================================
def build_export_config(args: argparse.Namespace) -> ExportConfig:
	"""
	Build export config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		ExportConfig.
	"""
	policy = ErrorPolicy.FAIL_FAST if args.fail_fast else ErrorPolicy.ISOLATE
	return ExportConfig(
		chunk_size=args.chunk_size,
		chunk_pause_seconds=args.chunk_pause,
		base_name=args.base_name,
		error_policy=policy,
	)


#============================================
def build_catalog_config(args: argparse.Namespace) -> CatalogConfig:
	"""
	Build catalog config; the token comes from WAKE_TOKEN.
	"""
	dotenv.load_dotenv()
	return CatalogConfig(token=os.environ.get("WAKE_TOKEN"), base_url=args.catalog_url)


#============================================
def positive_int(value: str) -> int:
	"""
	argparse type for counts that must be at least 1.
	"""
	try:
		number = int(value)
	except ValueError as err:
		raise argparse.ArgumentTypeError(f"expected an integer: {value!r}") from err
	if number < 1:
		raise argparse.ArgumentTypeError(f"must be at least 1: {value!r}")
	return number


#============================================
def positive_float(value: str) -> float:
	try:
		number = float(value)
	except ValueError as err:
		raise argparse.ArgumentTypeError(f"expected a number: {value!r}") from err
	if not number > 0:
		raise argparse.ArgumentTypeError(f"must be positive: {value!r}")
	return number


#============================================
def non_negative_float(value: str) -> float:
	try:
		number = float(value)
	except ValueError as err:
		raise argparse.ArgumentTypeError(f"expected a number: {value!r}") from err
	if not number >= 0:
		raise argparse.ArgumentTypeError(f"must not be negative: {value!r}")
	return number


#============================================
def add_export_arguments(parser: argparse.ArgumentParser, base_name: str) -> None:
	"""
	Add output, rendering and batching options shared by export commands.
	"""
	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output-dir", dest="output_dir", default=".", help="Directory for output PDFs.")
	output_group.add_argument("-b", "--base-name", dest="base_name", default=base_name, help="Output file base name.")

	render_group = parser.add_argument_group("Rendering")
	render_group.add_argument("--renderer-url", dest="renderer_url", default=DEFAULT_RENDERER_URL, help="Rendering service base URL.")
	render_group.add_argument("-r", "--requests-per-second", dest="requests_per_second", type=positive_float, default=DEFAULT_REQUESTS_PER_SECOND, help="Renderer request ceiling.")
	render_group.add_argument("-t", "--timeout", dest="timeout", type=positive_float, default=DEFAULT_RENDER_TIMEOUT, help="Per-label render timeout in seconds.")

	batch_group = parser.add_argument_group("Batching")
	batch_group.add_argument("-c", "--chunk-size", dest="chunk_size", type=positive_int, default=DEFAULT_CHUNK_SIZE, help="Labels per output file.")
	batch_group.add_argument("--chunk-pause", dest="chunk_pause", type=non_negative_float, default=DEFAULT_CHUNK_PAUSE, help="Pause between chunks in seconds.")
	batch_group.add_argument("-f", "--fail-fast", dest="fail_fast", action="store_true", help="Stop at the first render error.")
	batch_group.add_argument(
		"--stop-before-rendering",
		dest="stop_before_rendering",
		action="store_true",
		help="Write the ZPL programs to a .zpl file and skip rendering.",
	)
	parser.set_defaults(fail_fast=False, stop_before_rendering=False)


#============================================
def parse_logistic_spec(value: str):
	"""
	Parse "ACELERATO,GRAU,KIND[,NOTE]" into field values.

	Args:
		value: Comma-separated label description.

	Returns:
		Tuple of (acelerato, grau, kind, note).
	"""
	parts = [part.strip() for part in value.split(",", 3)]
	if len(parts) < 3:
		raise argparse.ArgumentTypeError(f"expected ACELERATO,GRAU,KIND[,NOTE]: {value!r}")
	try:
		grau = int(parts[1])
	except ValueError as err:
		raise argparse.ArgumentTypeError(f"grau must be an integer: {parts[1]!r}") from err
	note = parts[3] if len(parts) > 3 else ""
	return (parts[0], grau, parts[2], note)


#============================================
def parse_sku_spec(value: str):
	"""
	Parse "SKU[:QTY]" into a SKU and a label quantity.

	Args:
		value: SKU, optionally followed by a colon and a quantity.

	Returns:
		Tuple of (sku, quantity).
	"""
	sku, _, quantity = value.strip().partition(":")
	sku = sku.strip()
	if not sku:
		raise argparse.ArgumentTypeError(f"expected SKU[:QTY]: {value!r}")
	if not quantity:
		return (sku, 1)
	return (sku, positive_int(quantity.strip()))


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Render logistic and sales labels to PDF through a ZPL rendering service.")
	subparsers = parser.add_subparsers(dest="command", required=True)

	sales_parser = subparsers.add_parser("sales", help="Export sales labels from a spreadsheet.")
	sales_parser.add_argument("spreadsheet", help="Input .xlsx or .csv file.")
	sales_parser.add_argument("-s", "--sheet", dest="sheet_name", default=None, help="Sheet name (first sheet by default).")
	add_export_arguments(sales_parser, "etiquetas-vendas")

	logistic_parser = subparsers.add_parser("logistic", help="Export logistic defect labels.")
	logistic_parser.add_argument(
		"labels",
		nargs="+",
		type=parse_logistic_spec,
		help="Labels as ACELERATO,GRAU,KIND[,NOTE] with KIND one of Avaria, Defeito, Pendencia.",
	)
	add_export_arguments(logistic_parser, "etiquetas_logistica")

	template_parser = subparsers.add_parser("template", help="Write the spreadsheet import template.")
	template_parser.add_argument("-o", "--output", dest="output_path", default="exemplo-vendas.xlsx", help="Template path.")

	lookup_parser = subparsers.add_parser("lookup", help="Look up products in the catalog by SKU, optionally exporting their sales labels.")
	lookup_parser.add_argument("skus", nargs="+", type=parse_sku_spec, help="Products as SKU[:QTY].")
	lookup_parser.add_argument("--catalog-url", dest="catalog_url", default=DEFAULT_CATALOG_URL, help="Catalog base URL.")
	lookup_parser.add_argument("-e", "--export", dest="export", action="store_true", help="Export sales labels for the looked-up products.")
	lookup_parser.set_defaults(export=False)
	add_export_arguments(lookup_parser, "etiquetas-vendas")

	args = parser.parse_args(argv)
	return args


#============================================
def print_row_errors(errors: list) -> None:
	"""
	Print a row error summary with the first few reasons.
	"""
	if not errors:
		return
	print(f"Rows rejected: {len(errors)}")
	for error in errors[:SUMMARY_REASON_LIMIT]:
		print(f"  row {error.row_number}: {error.reason}")
	if len(errors) > SUMMARY_REASON_LIMIT:
		print(f"  ... and {len(errors) - SUMMARY_REASON_LIMIT} more")


#============================================
def run_in_worker(exporter: zle.batch.BatchExporter, records) -> zle.batch.ExportReport:
	"""
	Run an export on a worker thread so Ctrl-C can cancel it cleanly.

	Args:
		exporter: Configured BatchExporter.
		records: Records to export.

	Returns:
		ExportReport.
	"""
	cancel = zle.cancel.CancelToken()
	outcome: dict = {}

	def target() -> None:
		try:
			outcome["report"] = exporter.run(records, cancel)
		except Exception as err:
			outcome["error"] = err

	worker = threading.Thread(target=target, name="label-export", daemon=True)
	worker.start()
	try:
		while worker.is_alive():
			worker.join(0.2)
	except KeyboardInterrupt:
		print()
		print("Cancelling export")
		cancel.cancel()
		worker.join()
	if "error" in outcome:
		raise outcome["error"]
	return outcome["report"]


#============================================
def run_export(args: argparse.Namespace, session: zle.session.LabelSession) -> None:
	"""
	Render, merge and save the records held in a session.

	Args:
		args: Parsed argparse namespace.
		session: Session holding the records.
	"""
	records = session.snapshot()
	output_dir = pathlib.Path(args.output_dir)
	if args.stop_before_rendering:
		units = zle.batch.expand_units(records)
		output_dir.mkdir(parents=True, exist_ok=True)
		zpl_path = output_dir / f"{zle.export.sanitize_token(args.base_name)}.zpl"
		zpl_path.write_text("".join(unit.program for unit in units), encoding="utf-8")
		print(f"Label programs written: {len(units)} -> {zpl_path}")
		print("Stopping before rendering.")
		return

	renderer_config = build_renderer_config(args)
	export_config = build_export_config(args)
	print(f"Renderer: {renderer_config.endpoint}")
	print(f"Rate limit: {renderer_config.requests_per_second:g} requests/second")
	print(f"Chunk size: {export_config.chunk_size}")
	print(f"Error policy: {export_config.error_policy.value}")

	client = zle.renderer.LabelaryClient(renderer_config)
	sink = zle.export.DirectorySink(output_dir)
	exporter = zle.batch.BatchExporter(client, sink, export_config, PrintProgressObserver())

	start_time = time.perf_counter()
	try:
		report = run_in_worker(exporter, records)
	except (ExportCancelled, ExportHalted) as err:
		print(f"Export stopped: {err}")
		if err.report is not None:
			for line in zle.batch.summarize_report(err.report):
				print(line)
			for path in err.report.saved_paths:
				print(f"Saved: {path}")
		raise SystemExit(1) from err
	total_time = time.perf_counter() - start_time

	for path in report.saved_paths:
		print(f"Saved: {path}")
	for line in zle.batch.summarize_report(report):
		print(line)
	print(f"Timing: total={total_time:.2f}s")


#============================================
def run_sales(args: argparse.Namespace) -> None:
	"""
	Import a spreadsheet and export its sales labels.

	Args:
		args: Parsed argparse namespace.
	"""
	print(f"Spreadsheet: {args.spreadsheet}")
	session = zle.session.LabelSession()
	rows = zle.spreadsheet.read_rows(pathlib.Path(args.spreadsheet), args.sheet_name)
	records, errors = zle.spreadsheet.map_rows(rows, session.id_source)
	session.add_many(records)
	print(f"Rows read: {len(rows)}")
	print(f"Records imported: {len(records)}")
	print_row_errors(errors)
	if len(session) == 0:
		print("Nothing to export.")
		return
	run_export(args, session)


#============================================
def run_logistic(args: argparse.Namespace) -> None:
	"""
	Export logistic labels given on the command line, in argument order.

	Args:
		args: Parsed argparse namespace.
	"""
	session = zle.session.LabelSession()
	records = []
	for acelerato, grau, kind, note in args.labels:
		try:
			record = zle.records.LogisticRecord(
				id=session.id_source.next_id(),
				acelerato=acelerato,
				grau=grau,
				problem_kind=zle.records.ProblemKind.parse(kind),
				note=note,
			)
		except zle.errors.ValidationError as err:
			print(f"Invalid label {acelerato!r}: {err}")
			raise SystemExit(2) from err
		records.append(record)
	session.add_many(records)
	print(f"Logistic labels: {len(session)}")
	run_export(args, session)


#============================================
def run_lookup(args: argparse.Namespace, http_session=None) -> None:
	"""
	Look up catalog products by SKU, print them, and optionally export
	their sales labels in argument order.

	Args:
		args: Parsed argparse namespace.
		http_session: Optional requests.Session for the catalog client.
	"""
	client = zle.catalog.CatalogClient(build_catalog_config(args), session=http_session)
	session = zle.session.LabelSession()
	records = []
	for sku, quantity in args.skus:
		try:
			product = client.get_product(sku)
		except zle.errors.CatalogProxyError as err:
			status = f" (status {err.status_code})" if err.status_code is not None else ""
			print(f"Lookup failed for {sku}: {err.message}{status}")
			raise SystemExit(1) from err
		record = zle.catalog.product_to_record(product, session.id_source.next_id(), quantity)
		records.append(record)
		print(f"SKU: {record.sku}")
		print(f"Name: {record.product_name}")
		print(f"Price from: R$ {record.price_from}")
		print(f"Price to: R$ {record.price_to}")
		print(f"Installments: {record.installment_count}x R$ {record.installment_value}")
		print(f"EAN: {record.barcode}")
		print(f"URL: {record.qr_link}")
		print(f"Quantity: {record.quantity}")
	if not args.export:
		return
	session.add_many(records)
	print(f"Sales labels: {len(session)}")
	run_export(args, session)


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	if args.command == "sales":
		run_sales(args)
	elif args.command == "logistic":
		run_logistic(args)
	elif args.command == "template":
		path = zle.spreadsheet.write_template(pathlib.Path(args.output_path))
		print(f"Template written: {path}")
	elif args.command == "lookup":
		run_lookup(args)
