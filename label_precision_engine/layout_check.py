"""
Advisory layout checks.

check_layout() never raises for design problems and never mutates the
layout. Every finding is a LayoutWarning tagged with a severity:

	WARNING  likely visible print defect (off-canvas, unscannable barcode)
	INFO     harmless at print time (geometry snaps to the dot grid anyway)

Whether to block a save is left to the caller.
"""

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.barcode
import label_precision_engine.config
import label_precision_engine.grid
import label_precision_engine.template
import label_precision_engine.units


TemplateLayout = lpe.template.TemplateLayout
TemplateElement = lpe.template.TemplateElement
LayoutWarning = lpe.template.LayoutWarning

GRID_EPSILON_MM = lpe.config.GRID_EPSILON_MM
MIN_ELEMENT_DOTS = lpe.config.MIN_ELEMENT_DOTS
MIN_BARCODE_ELEMENT_DOTS = lpe.config.MIN_BARCODE_ELEMENT_DOTS

SEVERITY_WARNING = lpe.config.SEVERITY_WARNING
SEVERITY_INFO = lpe.config.SEVERITY_INFO


#============================================
def check_bounds(
	element: TemplateElement,
	canvas_width: float,
	canvas_height: float,
	margin: float,
) -> list[LayoutWarning]:
	"""
	Check an element against the canvas edges and printable margin.

	Args:
		element: Template element.
		canvas_width: Canvas width in millimeters.
		canvas_height: Canvas height in millimeters.
		margin: Printable margin in millimeters.

	Returns:
		List of warnings.
	"""
	warnings: list[LayoutWarning] = []
	right = element.x_mm + element.w_mm
	bottom = element.y_mm + element.h_mm
	if element.x_mm < -GRID_EPSILON_MM or element.y_mm < -GRID_EPSILON_MM:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="OUTSIDE_CANVAS_NEGATIVE",
				message="Element extends outside canvas (negative position)",
				element_id=element.id,
			)
		)
	if right > canvas_width + GRID_EPSILON_MM or bottom > canvas_height + GRID_EPSILON_MM:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="OUTSIDE_CANVAS",
				message=(
					f"Element extends outside canvas bounds "
					f"({right:.2f}x{bottom:.2f}mm on {canvas_width:.2f}x{canvas_height:.2f}mm)"
				),
				element_id=element.id,
			)
		)
	elif margin > 0 and (
		element.x_mm < margin - GRID_EPSILON_MM
		or element.y_mm < margin - GRID_EPSILON_MM
		or right > canvas_width - margin + GRID_EPSILON_MM
		or bottom > canvas_height - margin + GRID_EPSILON_MM
	):
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_INFO,
				code="INSIDE_MARGIN",
				message=f"Element reaches into the {margin:.2f}mm printable margin",
				element_id=element.id,
			)
		)
	return warnings


#============================================
def check_grid_alignment(element: TemplateElement, dpi: float) -> list[LayoutWarning]:
	"""
	Check that raw geometry already sits on the dot grid.

	Args:
		element: Template element.
		dpi: Printer resolution.

	Returns:
		List of warnings.
	"""
	off_grid: list[str] = []
	for name in ("x_mm", "y_mm"):
		value = getattr(element, name)
		if abs(value - lpe.grid.snap_mm(value, dpi)) > GRID_EPSILON_MM:
			off_grid.append(name)
	for name in ("w_mm", "h_mm"):
		value = getattr(element, name)
		if abs(value - lpe.grid.snap_size_mm(value, dpi)) > GRID_EPSILON_MM:
			off_grid.append(name)
	if not off_grid:
		return []
	return [
		LayoutWarning(
			severity=SEVERITY_INFO,
			code="OFF_DOT_GRID",
			message=f"Geometry not aligned to the {dpi:g} DPI dot grid: {', '.join(off_grid)}",
			element_id=element.id,
		)
	]


#============================================
def check_minimum_size(element: TemplateElement, dpi: float) -> list[LayoutWarning]:
	"""
	Check that an element is at least a few dots in each direction.

	Args:
		element: Template element.
		dpi: Printer resolution.

	Returns:
		List of warnings.
	"""
	min_dots = MIN_BARCODE_ELEMENT_DOTS if element.type == "barcode" else MIN_ELEMENT_DOTS
	min_mm = lpe.units.dots_to_mm(min_dots, dpi)
	if element.w_mm < min_mm - GRID_EPSILON_MM or element.h_mm < min_mm - GRID_EPSILON_MM:
		return [
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="TOO_SMALL",
				message=f"Element too small (minimum: {min_mm:.2f}mm)",
				element_id=element.id,
			)
		]
	return []


#============================================
def check_text_policy(element: TemplateElement) -> list[LayoutWarning]:
	"""
	Check that a shrink-to-fit range is usable.

	Args:
		element: Text element.

	Returns:
		List of warnings.
	"""
	if element.overflow is None or element.style is None:
		return []
	if element.overflow.mode != "shrink_to_fit":
		return []
	if element.overflow.min_font_size_pt > element.style.font_size_pt:
		return [
			LayoutWarning(
				severity=SEVERITY_INFO,
				code="FONT_RANGE_INVERTED",
				message=(
					f"Minimum font size {element.overflow.min_font_size_pt:g}pt is above "
					f"the design size {element.style.font_size_pt:g}pt; the range is swapped"
				),
				element_id=element.id,
			)
		]
	return []


#============================================
def check_layout(
	layout: TemplateLayout,
	canvas_size: tuple[float, float] | None = None,
) -> list[LayoutWarning]:
	"""
	Collect advisory warnings for a template layout.

	Args:
		layout: Template layout.
		canvas_size: Optional (width_mm, height_mm), defaults to the
			layout's own profile size.

	Returns:
		List of LayoutWarning entries, in element order.
	"""
	meta = layout.meta
	dpi = meta.dpi
	if canvas_size is None:
		canvas_width, canvas_height = meta.width_mm, meta.height_mm
	else:
		canvas_width, canvas_height = canvas_size

	warnings: list[LayoutWarning] = []
	if lpe.template.match_dk_preset(canvas_width, canvas_height) is None:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_INFO,
				code="NO_DK_PRESET",
				message=(
					f"{canvas_width:g}x{canvas_height:g}mm doesn't match standard Brother DK rolls. "
					"Consider using a preset size."
				),
			)
		)

	seen_ids: set[str] = set()
	for element in layout.elements:
		if element.id in seen_ids:
			warnings.append(
				LayoutWarning(
					severity=SEVERITY_WARNING,
					code="DUPLICATE_ID",
					message=f"Element id {element.id!r} is used more than once",
					element_id=element.id,
				)
			)
		seen_ids.add(element.id)
		warnings.extend(check_bounds(element, canvas_width, canvas_height, meta.margin_mm))
		warnings.extend(check_grid_alignment(element, dpi))
		warnings.extend(check_minimum_size(element, dpi))
		if element.type == "text":
			warnings.extend(check_text_policy(element))
		elif element.type == "barcode":
			warnings.extend(lpe.barcode.check_barcode_element(element, dpi))
	return warnings


#============================================
def format_warning(warning: LayoutWarning) -> str:
	"""
	Format a warning for console output.

	Args:
		warning: LayoutWarning.

	Returns:
		Single line string.
	"""
	target = f" [{warning.element_id}]" if warning.element_id else ""
	return f"{warning.severity} {warning.code}{target}: {warning.message}"


#============================================
def count_by_severity(warnings: list[LayoutWarning]) -> dict[str, int]:
	counts: dict[str, int] = {}
	for warning in warnings:
		counts[warning.severity] = counts.get(warning.severity, 0) + 1
	return counts
