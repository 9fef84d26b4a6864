"""
Dot grid snapping for positions, sizes, font sizes and barcode modules.
"""

# Standard Library
import dataclasses

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config
import label_precision_engine.units


DEFAULT_DPI = lpe.config.DEFAULT_DPI
DEFAULT_LINE_HEIGHT = lpe.config.DEFAULT_LINE_HEIGHT
GRID_EPSILON_MM = lpe.config.GRID_EPSILON_MM

round_half_up = lpe.units.round_half_up
dot_mm = lpe.units.dot_mm
pt_per_dot = lpe.units.pt_per_dot


#============================================
def snap_mm(mm: float, dpi: float = DEFAULT_DPI, dots: int = 1) -> float:
	"""
	Snap a position to the nearest multiple of N printer dots.

	Args:
		mm: Position in millimeters.
		dpi: Printer resolution.
		dots: Snap step in dots.

	Returns:
		Snapped position in millimeters.
	"""
	step = dot_mm(dpi)
	snapped_dots = round_half_up(mm / step / dots) * dots
	return snapped_dots * step


#============================================
def snap_size_mm(mm: float, dpi: float = DEFAULT_DPI) -> float:
	"""
	Snap a width or height to whole dots, never below one dot.

	Halves round up so a snapped size is never more than half a dot
	shorter than the nominal size.

	Args:
		mm: Size in millimeters.
		dpi: Printer resolution.

	Returns:
		Snapped size in millimeters.
	"""
	step = dot_mm(dpi)
	dots = max(1, round_half_up(mm / step))
	return dots * step


#============================================
def snap_font_size_pt(pt: float, dpi: float = DEFAULT_DPI) -> float:
	"""
	Snap a font size to a whole number of dots.

	Args:
		pt: Font size in points.
		dpi: Printer resolution.

	Returns:
		Snapped font size in points (multiple of 0.24 at 300 DPI).
	"""
	step = pt_per_dot(dpi)
	return round_half_up(pt / step) * step


#============================================
def module_mm_from_desired(desired_mm: float, dpi: float = DEFAULT_DPI) -> float:
	"""
	Nearest dot-exact barcode module width.

	Bars narrower than one dot cannot print at all, so the result is
	never below one dot. Above half a dot the result is within half a
	dot of desired_mm; below that the one-dot floor wins. Scan safety
	(at least two dots) is checked by the barcode validator, not forced
	here.

	Args:
		desired_mm: Desired module width in millimeters.
		dpi: Printer resolution.

	Returns:
		Module width in millimeters.
	"""
	step = dot_mm(dpi)
	dots = max(1, round_half_up(desired_mm / step))
	return dots * step


#============================================
def quiet_zone_mm_from_desired(desired_mm: float, dpi: float = DEFAULT_DPI) -> float:
	"""
	Nearest dot-exact barcode quiet zone.

	Args:
		desired_mm: Desired quiet zone in millimeters.
		dpi: Printer resolution.

	Returns:
		Quiet zone in millimeters.
	"""
	step = dot_mm(dpi)
	dots = max(1, round_half_up(desired_mm / step))
	return dots * step


#============================================
def snap_line_height(
	font_size_pt: float,
	line_height_ratio: float = DEFAULT_LINE_HEIGHT,
	dpi: float = DEFAULT_DPI,
) -> float:
	"""
	Adjust a line height ratio so each line advances by whole dots.

	Args:
		font_size_pt: Font size in points.
		line_height_ratio: Desired line height multiplier.
		dpi: Printer resolution.

	Returns:
		Snapped line height multiplier.
	"""
	if font_size_pt <= 0:
		return line_height_ratio
	font_size_mm = lpe.units.points_to_mm(font_size_pt)
	snapped_mm = snap_size_mm(font_size_mm * line_height_ratio, dpi)
	return snapped_mm / font_size_mm


#============================================
def is_on_grid(mm: float, dpi: float = DEFAULT_DPI, epsilon: float = GRID_EPSILON_MM) -> bool:
	return abs(mm - snap_mm(mm, dpi)) <= epsilon


#============================================
def snap_element(element, dpi: float = DEFAULT_DPI):
	"""
	Snap an element's position and extent to the dot grid.

	Args:
		element: Any dataclass with x_mm, y_mm, w_mm and h_mm fields.
		dpi: Printer resolution.

	Returns:
		New element with snapped geometry.
	"""
	return dataclasses.replace(
		element,
		x_mm=snap_mm(element.x_mm, dpi),
		y_mm=snap_mm(element.y_mm, dpi),
		w_mm=snap_size_mm(element.w_mm, dpi),
		h_mm=snap_size_mm(element.h_mm, dpi),
	)
