"""
CLI entry points for rendering, checking and calibrating labels.
"""

# Standard Library
import argparse
import json
import pathlib
import sys
import time

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.calibration
import label_precision_engine.config
import label_precision_engine.layout_check
import label_precision_engine.render
import label_precision_engine.resolve
import label_precision_engine.template


RenderConfig = lpe.config.RenderConfig
TemplateError = lpe.template.TemplateError
CalibrationError = lpe.calibration.CalibrationError

SEVERITY_WARNING = lpe.config.SEVERITY_WARNING


#============================================
def parse_font_args(values: list[str] | None) -> dict[str, str]:
	"""
	Parse repeated NAME=PATH font arguments.

	Args:
		values: Raw argument values.

	Returns:
		Font paths keyed by family name.
	"""
	fonts: dict[str, str] = {}
	for value in values or []:
		name, sep, path = value.partition("=")
		if not sep or not name or not path:
			raise TemplateError("font", f"expected NAME=PATH, got {value!r}")
		fonts[name.strip()] = path.strip()
	return fonts


#============================================
def load_records(path: str | None) -> list[dict]:
	"""
	Load data records for binding. A JSON object is one record, a JSON
	list is a batch.

	Args:
		path: JSON path, or None for a single empty record.

	Returns:
		List of records.
	"""
	if path is None:
		return [{}]
	data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
	if isinstance(data, list):
		return [item for item in data if isinstance(item, dict)]
	if isinstance(data, dict):
		return [data]
	raise TemplateError("records", "expected an object or a list of objects")


#============================================
def load_papers(path: str) -> dict[str, tuple[int | None, int | None]]:
	"""
	Load the printer's paper sizes, in tenths of a millimeter.

	Args:
		path: JSON object mapping paper name to [width, height].

	Returns:
		Paper sizes keyed by name. Continuous rolls use null for height.
	"""
	data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
	if not isinstance(data, dict):
		raise TemplateError("papers", "expected an object of name: [width, height]")
	papers: dict[str, tuple[int | None, int | None]] = {}
	for name, size in data.items():
		if not isinstance(size, list) or len(size) != 2:
			raise TemplateError(f"papers.{name}", f"expected [width, height], got {size!r}")
		try:
			papers[name] = tuple(None if value is None else int(value) for value in size)
		except (TypeError, ValueError):
			raise TemplateError(f"papers.{name}", f"expected whole tenths of a mm, got {size!r}") from None
	return papers


#============================================
def build_render_config(args: argparse.Namespace) -> RenderConfig:
	"""
	Build render config from CLI args.

	Args:
		args: Parsed argparse namespace.

	Returns:
		RenderConfig.
	"""
	return RenderConfig(
		draw_outlines=args.draw_outlines,
		diagnostic=False,
		font_files=parse_font_args(args.fonts),
		embed_autofit_script=args.embed_script,
		verbose=args.verbose,
	)


#============================================
def print_warnings(warnings: list, verbose: bool) -> None:
	counts = lpe.layout_check.count_by_severity(warnings)
	summary = ", ".join(f"{severity}={count}" for severity, count in sorted(counts.items()))
	print(f"Warnings: {len(warnings)}" + (f" ({summary})" if summary else ""))
	for warning in warnings:
		if verbose or warning.severity == SEVERITY_WARNING:
			print(f"  {lpe.layout_check.format_warning(warning)}")


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(description="Dot-exact label rendering and printer calibration.")
	subparsers = parser.add_subparsers(dest="command", required=True)

	render_parser = subparsers.add_parser("render", help="Render a template against data records.")
	render_parser.add_argument("template", help="Template layout JSON.")
	input_group = render_parser.add_argument_group("Input")
	input_group.add_argument("-r", "--records", dest="records_path", default=None, help="Record JSON (object or list).")
	input_group.add_argument("--font", dest="fonts", action="append", default=None, help="Embed a TrueType font, NAME=PATH.")
	input_group.add_argument("--papers", dest="papers_path", default=None, help="Printer paper sizes JSON, tenths of a mm.")
	output_group = render_parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", required=True, help="Output PDF path.")
	output_group.add_argument("--html", dest="html_path", default=None, help="Also write an HTML preview of the first label.")
	output_group.add_argument("-m", "--manifest", dest="manifest_path", default=None, help="Output manifest JSON path.")
	calibration_group = render_parser.add_argument_group("Calibration")
	calibration_group.add_argument("-s", "--station", dest="station_id", default=None, help="Printing station id.")
	calibration_group.add_argument("--profile-id", dest="profile_id", default=None, help="Override the template's profile id.")
	calibration_group.add_argument("--store", dest="store_path", default=None, help="Calibration store JSON path.")
	behavior_group = render_parser.add_argument_group("Behavior")
	behavior_group.add_argument("-d", "--draw-outlines", dest="draw_outlines", action="store_true", help="Draw element outlines.")
	behavior_group.add_argument("-D", "--no-draw-outlines", dest="draw_outlines", action="store_false", help="Disable element outlines.")
	behavior_group.add_argument("--no-script", dest="embed_script", action="store_false", help="Omit the autofit script from HTML.")
	behavior_group.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Print every warning and progress.")
	render_parser.set_defaults(draw_outlines=False, embed_script=True, verbose=False)

	check_parser = subparsers.add_parser("check", help="Report layout warnings for a template.")
	check_parser.add_argument("template", help="Template layout JSON.")
	check_parser.add_argument("-v", "--verbose", dest="verbose", action="store_true", help="Print INFO warnings too.")
	check_parser.add_argument("--strict", dest="strict", action="store_true", help="Exit non-zero on any WARNING.")

	card_parser = subparsers.add_parser("calibration-card", help="Write a calibration card PDF.")
	card_parser.add_argument("profile", help="Printer profile JSON (or a template).")
	card_parser.add_argument("-o", "--output", dest="output_path", required=True, help="Output PDF path.")
	card_parser.add_argument("--horizontal-ruler", dest="horizontal_mm", type=float, default=None, help="Horizontal ruler length in mm.")
	card_parser.add_argument("--vertical-ruler", dest="vertical_mm", type=float, default=None, help="Vertical ruler length in mm.")

	calibrate_parser = subparsers.add_parser("calibrate", help="Store a calibration from card measurements.")
	calibrate_parser.add_argument("profile", help="Printer profile JSON (or a template).")
	calibrate_parser.add_argument("-s", "--station", dest="station_id", required=True, help="Printing station id.")
	calibrate_parser.add_argument("--store", dest="store_path", required=True, help="Calibration store JSON path.")
	measure_group = calibrate_parser.add_argument_group("Measurements (mm)")
	measure_group.add_argument("--horizontal", dest="horizontal_mm", required=True, help="Measured horizontal ruler.")
	measure_group.add_argument("--vertical", dest="vertical_mm", required=True, help="Measured vertical ruler.")
	measure_group.add_argument("--offset-x", dest="offset_x_mm", default="0", help="Horizontal corner offset.")
	measure_group.add_argument("--offset-y", dest="offset_y_mm", default="0", help="Vertical corner offset.")
	measure_group.add_argument("--horizontal-ruler", dest="expected_horizontal_mm", type=float, default=None, help="Printed horizontal ruler length.")
	measure_group.add_argument("--vertical-ruler", dest="expected_vertical_mm", type=float, default=None, help="Printed vertical ruler length.")

	args = parser.parse_args(argv)
	return args


#============================================
def run_render(args: argparse.Namespace) -> int:
	"""
	Resolve a template against records and write the PDF.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Exit code.
	"""
	start_time = time.perf_counter()
	config = build_render_config(args)
	# fonts must be known before autofit measures anything
	lpe.render.register_fonts(config.font_files)
	layout = lpe.template.load_layout(pathlib.Path(args.template))
	records = load_records(args.records_path)
	print(f"Template: {args.template}")
	print(f"Label: {layout.meta.width_mm:g}x{layout.meta.height_mm:g}mm at {layout.meta.dpi:g} DPI")
	print(f"Records: {len(records)}")

	override = None
	if args.station_id and args.store_path:
		profile_id = args.profile_id or layout.meta.profile_id
		store = lpe.calibration.JsonCalibrationStore(pathlib.Path(args.store_path))
		override = store.get(args.station_id, profile_id)
		if override is None:
			print(f"Calibration: none stored for station {args.station_id}, profile {profile_id}")
		else:
			print(f"Calibration: {lpe.calibration.describe_override(override)}")

	if args.papers_path:
		papers = load_papers(args.papers_path)
		match = lpe.template.find_paper_match(papers, layout.meta.width_mm, layout.meta.height_mm)
		if match is None:
			print("Paper: WARNING no printer paper matches this label size")
		else:
			print(f"Paper: {match[0]} (rotation {match[1]})")

	labels = []
	for index, record in enumerate(records):
		labels.append(
			lpe.resolve.resolve_layout(layout, record, override, include_checks=(index == 0))
		)

	output_path = pathlib.Path(args.output_path)
	result = lpe.render.render_batch(labels, output_path, config)
	print(f"Labels rendered: {result.labels_rendered}")
	print(f"Pages written: {result.pages}")
	if result.skipped_elements:
		print(f"Elements skipped: {result.skipped_elements}")
	print_warnings(result.warnings, args.verbose)

	if args.html_path and labels:
		lpe.render.write_label_html(labels[0], pathlib.Path(args.html_path), config)
		print(f"HTML written: {args.html_path}")
		font_warnings = lpe.render.html_font_warnings(labels[0], config.font_files)
		if font_warnings:
			print_warnings(font_warnings, args.verbose)
	manifest_path = args.manifest_path
	if manifest_path is None:
		manifest_path = f"{output_path}.json"
	lpe.render.write_manifest(pathlib.Path(manifest_path), labels, result)
	print(f"Manifest written: {manifest_path}")
	print("Timing: total={:.2f}s".format(time.perf_counter() - start_time))
	return 0


#============================================
def run_check(args: argparse.Namespace) -> int:
	layout = lpe.template.load_layout(pathlib.Path(args.template))
	warnings = lpe.layout_check.check_layout(layout)
	print(f"Template: {args.template}")
	print(f"Elements: {len(layout.elements)}")
	print_warnings(warnings, args.verbose)
	if args.strict and any(warning.severity == SEVERITY_WARNING for warning in warnings):
		return 1
	return 0


#============================================
def run_calibration_card(args: argparse.Namespace) -> int:
	profile = lpe.template.load_profile(pathlib.Path(args.profile))
	horizontal_mm, vertical_mm = lpe.calibration.ruler_lengths_for_profile(profile)
	if args.horizontal_mm is not None:
		horizontal_mm = args.horizontal_mm
	if args.vertical_mm is not None:
		vertical_mm = args.vertical_mm
	path = lpe.render.render_calibration_card(profile, pathlib.Path(args.output_path), horizontal_mm, vertical_mm)
	print(f"Calibration card written: {path}")
	print(f"Rulers: horizontal {horizontal_mm:g}mm, vertical {vertical_mm:g}mm")
	return 0


#============================================
def run_calibrate(args: argparse.Namespace) -> int:
	"""
	Compute and store an override from measured card values.

	Args:
		args: Parsed argparse namespace.

	Returns:
		Exit code.
	"""
	profile = lpe.template.load_profile(pathlib.Path(args.profile))
	if not profile.profile_id:
		raise CalibrationError("profile_id", "profile has no id to key the calibration by")
	horizontal_mm, vertical_mm = lpe.calibration.ruler_lengths_for_profile(profile)
	if args.expected_horizontal_mm is not None:
		horizontal_mm = args.expected_horizontal_mm
	if args.expected_vertical_mm is not None:
		vertical_mm = args.expected_vertical_mm
	measurements = lpe.calibration.parse_measurements(
		{
			"horizontal_mm": args.horizontal_mm,
			"vertical_mm": args.vertical_mm,
			"corner_offset_x_mm": args.offset_x_mm,
			"corner_offset_y_mm": args.offset_y_mm,
		}
	)
	override = lpe.calibration.compute_calibration(
		args.station_id,
		profile.profile_id,
		measurements,
		horizontal_mm,
		vertical_mm,
	)
	store = lpe.calibration.JsonCalibrationStore(pathlib.Path(args.store_path))
	stored = store.upsert(override)
	print(lpe.calibration.describe_override(stored))
	print(f"Store: {args.store_path}")
	return 0


#============================================
def main(argv: list[str] | None = None) -> int:
	"""
	Main entry point.
	"""
	args = parse_args(argv)
	commands = {
		"render": run_render,
		"check": run_check,
		"calibration-card": run_calibration_card,
		"calibrate": run_calibrate,
	}
	try:
		return commands[args.command](args)
	except (TemplateError, CalibrationError) as error:
		print(f"Error: {error}", file=sys.stderr)
		return 2


if __name__ == "__main__":
	sys.exit(main())
