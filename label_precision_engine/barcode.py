"""
Barcode scan-safety constraints.

Every check here is advisory: a barcode that fails still saves and
still prints, it just may not scan reliably.
"""

# Standard Library
import re

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config
import label_precision_engine.grid
import label_precision_engine.template
import label_precision_engine.units


TemplateElement = lpe.template.TemplateElement
LayoutWarning = lpe.template.LayoutWarning

DEFAULT_DPI = lpe.config.DEFAULT_DPI
DEFAULT_SYMBOLOGY = lpe.config.DEFAULT_SYMBOLOGY
BARCODE_MIN_HEIGHT_MM = lpe.config.BARCODE_MIN_HEIGHT_MM
BARCODE_MIN_QUIET_ZONE_DOTS = lpe.config.BARCODE_MIN_QUIET_ZONE_DOTS
BARCODE_RECOMMENDED = lpe.config.BARCODE_RECOMMENDED
MIN_MODULE_DOTS = lpe.config.MIN_MODULE_DOTS
CODE128_MAX_DATA = lpe.config.CODE128_MAX_DATA
GRID_EPSILON_MM = lpe.config.GRID_EPSILON_MM
SEVERITY_WARNING = lpe.config.SEVERITY_WARNING

DIGITS_12_13 = re.compile(r"^\d{12,13}$")
DIGITS_11_12 = re.compile(r"^\d{11,12}$")
DIGITS_7_8 = re.compile(r"^\d{7,8}$")


#============================================
def symbology_key(symbology: str | None) -> str:
	if not symbology:
		return DEFAULT_SYMBOLOGY
	return symbology.strip().lower().replace("-", "").replace("_", "")


#============================================
def normalize_symbology(symbology: str | None) -> str:
	"""
	Lower-case a symbology name and fall back to code128.

	Args:
		symbology: Symbology name or None.

	Returns:
		Known symbology key.
	"""
	key = symbology_key(symbology)
	if key not in BARCODE_MIN_HEIGHT_MM:
		return DEFAULT_SYMBOLOGY
	return key


#============================================
def minimum_barcode_height_mm(symbology: str = DEFAULT_SYMBOLOGY) -> float:
	"""
	Minimum printable bar height a scanner can read reliably.

	Args:
		symbology: Barcode symbology.

	Returns:
		Minimum height in millimeters.
	"""
	return BARCODE_MIN_HEIGHT_MM[normalize_symbology(symbology)]


#============================================
def minimum_quiet_zone_mm(symbology: str = DEFAULT_SYMBOLOGY, dpi: float = DEFAULT_DPI) -> float:
	"""
	Minimum blank margin either side of the symbol.

	Args:
		symbology: Barcode symbology.
		dpi: Printer resolution.

	Returns:
		Minimum quiet zone in millimeters.
	"""
	dots = BARCODE_MIN_QUIET_ZONE_DOTS[normalize_symbology(symbology)]
	return lpe.units.dots_to_mm(dots, dpi)


#============================================
def recommended_dimensions(symbology: str = DEFAULT_SYMBOLOGY) -> dict[str, float]:
	return dict(BARCODE_RECOMMENDED[normalize_symbology(symbology)])


#============================================
def check_barcode_element(element: TemplateElement, dpi: float = DEFAULT_DPI) -> list[LayoutWarning]:
	"""
	Flag a barcode element that may not scan reliably.

	Args:
		element: Barcode template element.
		dpi: Printer resolution.

	Returns:
		List of warnings, empty when the barcode is scan-safe.
	"""
	warnings: list[LayoutWarning] = []
	params = element.barcode
	if params is None:
		params = lpe.template.BarcodeParams()
	symbology = normalize_symbology(params.symbology)
	if symbology_key(params.symbology) != symbology:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_UNKNOWN_SYMBOLOGY",
				message=f"Unknown symbology {params.symbology!r}, treated as {symbology}",
				element_id=element.id,
			)
		)

	min_height = minimum_barcode_height_mm(symbology)
	if element.h_mm < min_height - GRID_EPSILON_MM:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_TOO_SHORT",
				message=f"Barcode height {element.h_mm:.2f}mm is below the {symbology} minimum of {min_height:.2f}mm",
				element_id=element.id,
			)
		)

	module_mm = lpe.grid.module_mm_from_desired(params.module_width_mm, dpi)
	if abs(module_mm - params.module_width_mm) > GRID_EPSILON_MM:
		module_dots = lpe.units.mm_to_dots(module_mm, dpi)
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_MODULE_OFF_GRID",
				message=(
					f"Module width {params.module_width_mm:.3f}mm falls between dots; "
					f"prints as {module_mm:.3f}mm ({module_dots} dots)"
				),
				element_id=element.id,
			)
		)
	if lpe.units.mm_to_dots(module_mm, dpi) < MIN_MODULE_DOTS:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_MODULE_TOO_NARROW",
				message=f"Module width is below {MIN_MODULE_DOTS} dots and will blur on thermal heads",
				element_id=element.id,
			)
		)

	min_quiet = minimum_quiet_zone_mm(symbology, dpi)
	if params.quiet_zone_mm < min_quiet - GRID_EPSILON_MM:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_QUIET_ZONE_TOO_SMALL",
				message=f"Quiet zone {params.quiet_zone_mm:.2f}mm is below the minimum of {min_quiet:.2f}mm",
				element_id=element.id,
			)
		)
	return warnings


#============================================
def check_barcode_data(value: str, symbology: str = DEFAULT_SYMBOLOGY) -> list[str]:
	"""
	Check bound barcode data against its symbology.

	Args:
		value: Resolved barcode value.
		symbology: Barcode symbology.

	Returns:
		List of problem descriptions.
	"""
	if not value or not value.strip():
		return ["Barcode data is empty"]
	key = normalize_symbology(symbology)
	problems: list[str] = []
	if key == "code128" and len(value) > CODE128_MAX_DATA:
		problems.append("Code128 data may be too long for reliable scanning")
	elif key == "ean13" and not DIGITS_12_13.match(value):
		problems.append("EAN-13 requires 12-13 digits")
	elif key == "upca" and not DIGITS_11_12.match(value):
		problems.append("UPC-A requires 11-12 digits")
	elif key == "ean8" and not DIGITS_7_8.match(value):
		problems.append("EAN-8 requires 7-8 digits")
	return problems
