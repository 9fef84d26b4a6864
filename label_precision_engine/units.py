"""
Millimeter, printer dot and point conversions.
"""

# Standard Library
import math

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config


MM_PER_INCH = lpe.config.MM_PER_INCH
POINTS_PER_INCH = lpe.config.POINTS_PER_INCH
CSS_PX_PER_INCH = lpe.config.CSS_PX_PER_INCH
DEFAULT_DPI = lpe.config.DEFAULT_DPI


#============================================
def round_half_up(value: float) -> int:
	"""
	Round to the nearest integer, ties away from zero for positive values.

	Python's round() uses banker's rounding; browsers use Math.round().
	Both contexts must agree on every dot, so this mirrors Math.round().

	Args:
		value: Value to round.

	Returns:
		Rounded integer.
	"""
	return int(math.floor(value + 0.5))


#============================================
def dot_mm(dpi: float = DEFAULT_DPI) -> float:
	"""
	Size of a single printer dot in millimeters.

	Args:
		dpi: Printer resolution in dots per inch.

	Returns:
		Millimeters per dot.
	"""
	return MM_PER_INCH / dpi


#============================================
def pt_per_dot(dpi: float = DEFAULT_DPI) -> float:
	"""
	Size of a single printer dot in points.

	Args:
		dpi: Printer resolution in dots per inch.

	Returns:
		Points per dot (0.24 at 300 DPI).
	"""
	return POINTS_PER_INCH / dpi


#============================================
def mm_to_dots(mm: float, dpi: float = DEFAULT_DPI) -> int:
	"""
	Convert millimeters to the nearest whole printer dot.

	Args:
		mm: Length in millimeters.
		dpi: Printer resolution.

	Returns:
		Whole dot count.
	"""
	return round_half_up(mm / dot_mm(dpi))


#============================================
def dots_to_mm(dots: float, dpi: float = DEFAULT_DPI) -> float:
	"""
	Convert printer dots to millimeters.

	Args:
		dots: Dot count.
		dpi: Printer resolution.

	Returns:
		Length in millimeters.
	"""
	return dots * dot_mm(dpi)


#============================================
def dots_to_points(dots: float, dpi: float = DEFAULT_DPI) -> float:
	return dots * pt_per_dot(dpi)


#============================================
def mm_to_points(mm: float) -> float:
	"""
	Convert millimeters to PDF points.

	Args:
		mm: Length in millimeters.

	Returns:
		Length in points.
	"""
	return lpe.config.inches_to_points(mm / MM_PER_INCH)


#============================================
def points_to_mm(points: float) -> float:
	return points / POINTS_PER_INCH * MM_PER_INCH


#============================================
def mm_to_css_px(mm: float) -> float:
	"""
	Convert millimeters to CSS reference pixels (96 per inch).

	Args:
		mm: Length in millimeters.

	Returns:
		CSS pixels.
	"""
	return mm / MM_PER_INCH * CSS_PX_PER_INCH


#============================================
def mm_to_tenths(mm: float) -> int:
	"""
	Convert millimeters to tenths of a millimeter, the unit printer
	drivers use to report paper sizes.

	Args:
		mm: Length in millimeters.

	Returns:
		Tenths of a millimeter.
	"""
	return round_half_up(mm * 10.0)
