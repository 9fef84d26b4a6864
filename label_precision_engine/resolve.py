"""
Print-time resolution of a template layout into dot-exact geometry.

resolve_layout() is the hand-off to the renderers: bindings evaluated,
geometry snapped, calibrated and snapped again, text sizes decided,
barcode modules quantized, and every soft warning collected.
"""

# Standard Library
import dataclasses

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.autofit
import label_precision_engine.barcode
import label_precision_engine.binding
import label_precision_engine.calibration
import label_precision_engine.config
import label_precision_engine.grid
import label_precision_engine.layout_check
import label_precision_engine.template
import label_precision_engine.units


PrinterProfile = lpe.template.PrinterProfile
TemplateElement = lpe.template.TemplateElement
TemplateLayout = lpe.template.TemplateLayout
TextStyle = lpe.template.TextStyle
OverflowPolicy = lpe.template.OverflowPolicy
BarcodeParams = lpe.template.BarcodeParams
LayoutWarning = lpe.template.LayoutWarning
CalibrationOverride = lpe.calibration.CalibrationOverride
FitResult = lpe.autofit.FitResult

SEVERITY_WARNING = lpe.config.SEVERITY_WARNING
SEVERITY_INFO = lpe.config.SEVERITY_INFO


@dataclasses.dataclass(frozen=True)
class ResolvedElement:
	element: TemplateElement
	x_dots: int
	y_dots: int
	w_dots: int
	h_dots: int
	value: str = ""
	fit: FitResult | None = None
	font_name: str = ""
	line_advance_pt: float = 0.0
	module_dots: int = 0
	quiet_zone_dots: int = 0
	symbology: str = ""


@dataclasses.dataclass(frozen=True)
class ResolvedLabel:
	profile: PrinterProfile
	width_dots: int
	height_dots: int
	elements: tuple[ResolvedElement, ...]
	warnings: tuple[LayoutWarning, ...] = ()
	override: CalibrationOverride | None = None
	name: str = ""

	@property
	def dpi(self) -> float:
		return self.profile.dpi


#============================================
def resolve_element_geometry(
	element: TemplateElement,
	dpi: float,
	override: CalibrationOverride | None = None,
) -> TemplateElement:
	"""
	Snap, calibrate and snap again.

	Args:
		element: Template element in millimeters.
		dpi: Printer resolution.
		override: Optional calibration override.

	Returns:
		Element whose geometry lies on the dot grid.
	"""
	snapped = lpe.grid.snap_element(element, dpi)
	if override is None:
		return snapped
	corrected = lpe.calibration.apply_calibration(snapped, override)
	return lpe.grid.snap_element(corrected, dpi)


#============================================
def resolve_label_size(profile: PrinterProfile) -> tuple[int, int]:
	width = lpe.units.mm_to_dots(lpe.grid.snap_size_mm(profile.width_mm, profile.dpi), profile.dpi)
	height = lpe.units.mm_to_dots(lpe.grid.snap_size_mm(profile.height_mm, profile.dpi), profile.dpi)
	return (width, height)


#============================================
def resolve_text_element(
	element: TemplateElement,
	value: str,
	w_dots: int,
	h_dots: int,
	dpi: float,
) -> tuple[FitResult, str, float]:
	"""
	Decide the printed size and lines of a text element.

	Args:
		element: Snapped text element.
		value: Resolved text.
		w_dots: Box width in dots.
		h_dots: Box height in dots.
		dpi: Printer resolution.

	Returns:
		Tuple of (FitResult, font name, line advance in points).
	"""
	style = element.style or TextStyle()
	overflow = element.overflow or OverflowPolicy()
	metrics = lpe.autofit.metrics_for_style(style, dpi)
	box_width = lpe.units.dots_to_points(w_dots, dpi)
	box_height = lpe.units.dots_to_points(h_dots, dpi)
	fit = lpe.autofit.resolve_text(value, box_width, box_height, style, overflow, metrics, dpi)
	return (fit, metrics.font_name, metrics.line_advance(fit.font_size_pt))


#============================================
def resolve_barcode_element(element: TemplateElement, value: str, dpi: float) -> tuple[str, int, int, list[LayoutWarning]]:
	"""
	Quantize barcode module and quiet zone, and check the bound data.

	Args:
		element: Barcode element.
		value: Resolved barcode data.
		dpi: Printer resolution.

	Returns:
		Tuple of (symbology, module dots, quiet zone dots, warnings).
	"""
	params = element.barcode or BarcodeParams()
	symbology = lpe.barcode.normalize_symbology(params.symbology)
	module_mm = lpe.grid.module_mm_from_desired(params.module_width_mm, dpi)
	quiet_mm = lpe.grid.quiet_zone_mm_from_desired(params.quiet_zone_mm, dpi)
	warnings = [
		LayoutWarning(
			severity=SEVERITY_WARNING,
			code="BARCODE_DATA",
			message=problem,
			element_id=element.id,
		)
		for problem in lpe.barcode.check_barcode_data(value, symbology)
	]
	return (
		symbology,
		lpe.units.mm_to_dots(module_mm, dpi),
		lpe.units.mm_to_dots(quiet_mm, dpi),
		warnings,
	)


#============================================
def resolve_layout(
	layout: TemplateLayout,
	record: dict | None = None,
	override: CalibrationOverride | None = None,
	binder=None,
	include_checks: bool = True,
) -> ResolvedLabel:
	"""
	Resolve a layout against one record for printing.

	Hard problems in the layout raise TemplateError. Everything else
	is returned as warnings on the resolved label.

	Args:
		layout: Template layout.
		record: Flat data record for bindings.
		override: Calibration override for the printing station.
		binder: Callable (bind, record) -> str, defaults to
			binding.evaluate_binding.
		include_checks: Also run the layout checker on the raw layout.

	Returns:
		ResolvedLabel.
	"""
	lpe.template.validate_layout(layout)
	if binder is None:
		binder = lpe.binding.evaluate_binding
	if override is not None:
		override = lpe.calibration.clamp_override(override)
	profile = layout.meta
	dpi = profile.dpi
	width_dots, height_dots = resolve_label_size(profile)

	warnings: list[LayoutWarning] = []
	if include_checks:
		warnings.extend(lpe.layout_check.check_layout(layout))

	resolved: list[ResolvedElement] = []
	for element in layout.elements:
		value = binder(element.bind, record) if element.bind else ""
		value = "" if value is None else str(value)
		if element.hide_if_empty and not value.strip():
			continue
		placed = resolve_element_geometry(element, dpi, override)
		x_dots = lpe.units.mm_to_dots(placed.x_mm, dpi)
		y_dots = lpe.units.mm_to_dots(placed.y_mm, dpi)
		w_dots = lpe.units.mm_to_dots(placed.w_mm, dpi)
		h_dots = lpe.units.mm_to_dots(placed.h_mm, dpi)

		if element.type == "text":
			fit, font_name, advance = resolve_text_element(placed, value, w_dots, h_dots, dpi)
			if fit.warning:
				warnings.append(
					LayoutWarning(
						severity=SEVERITY_WARNING if not fit.truncated else SEVERITY_INFO,
						code="TEXT_OVERFLOW" if not fit.truncated else "TEXT_TRUNCATED",
						message=fit.warning,
						element_id=element.id,
					)
				)
			resolved.append(
				ResolvedElement(
					element=placed,
					x_dots=x_dots,
					y_dots=y_dots,
					w_dots=w_dots,
					h_dots=h_dots,
					value=value,
					fit=fit,
					font_name=font_name,
					line_advance_pt=advance,
				)
			)
		elif element.type == "barcode":
			symbology, module_dots, quiet_dots, data_warnings = resolve_barcode_element(placed, value, dpi)
			warnings.extend(data_warnings)
			resolved.append(
				ResolvedElement(
					element=placed,
					x_dots=x_dots,
					y_dots=y_dots,
					w_dots=w_dots,
					h_dots=h_dots,
					value=value,
					module_dots=module_dots,
					quiet_zone_dots=quiet_dots,
					symbology=symbology,
				)
			)
		else:
			resolved.append(
				ResolvedElement(
					element=placed,
					x_dots=x_dots,
					y_dots=y_dots,
					w_dots=w_dots,
					h_dots=h_dots,
					value=value,
				)
			)

	return ResolvedLabel(
		profile=profile,
		width_dots=width_dots,
		height_dots=height_dots,
		elements=tuple(resolved),
		warnings=tuple(warnings),
		override=override,
		name=layout.name,
	)


#============================================
def geometry_table(label: ResolvedLabel) -> list[dict]:
	"""
	Dot geometry of every resolved element, for manifests and diffs.

	Args:
		label: Resolved label.

	Returns:
		List of dicts in paint order.
	"""
	rows: list[dict] = []
	for item in label.elements:
		row = {
			"id": item.element.id,
			"type": item.element.type,
			"x_dots": item.x_dots,
			"y_dots": item.y_dots,
			"w_dots": item.w_dots,
			"h_dots": item.h_dots,
		}
		if item.fit is not None:
			row["font_size_pt"] = round(item.fit.font_size_pt, 4)
			row["lines"] = list(item.fit.lines)
		if item.module_dots:
			row["module_dots"] = item.module_dots
			row["quiet_zone_dots"] = item.quiet_zone_dots
		rows.append(row)
	return rows
