"""
Shared configuration and constants.
"""

import dataclasses


MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0
CSS_PX_PER_INCH = 96.0
DEFAULT_DPI = 300

DEFAULT_MARGIN_MM = 0.0
DEFAULT_BACKGROUND = "#FFFFFF"
GRID_EPSILON_MM = 0.001

DEFAULT_FONT_FAMILY = "Helvetica"
DEFAULT_FONT_REGULAR = "Helvetica"
DEFAULT_FONT_BOLD = "Helvetica-Bold"
DEFAULT_FONT_ITALIC = "Helvetica-Oblique"
DEFAULT_FONT_BOLD_ITALIC = "Helvetica-BoldOblique"
DEFAULT_TEXT_SIZE = 10.0
DEFAULT_TEXT_WEIGHT = 400
DEFAULT_TEXT_ALIGN = "left"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_LINE_HEIGHT = 1.2
DEFAULT_MIN_FONT_SIZE = 6.0
DEFAULT_MAX_LINES = 2
ELLIPSIS = "…"

SEVERITY_WARNING = "WARNING"
SEVERITY_INFO = "INFO"

ELEMENT_TYPES = ("text", "barcode", "image", "box")
OVERFLOW_MODES = ("shrink_to_fit", "wrap_lines", "ellipsis")
TEXT_ALIGNMENTS = ("left", "center", "right")

AUTOFIT_ITERATIONS = 7
# fraction of one dot allowed as overflow
AUTOFIT_TOLERANCE = 0.5

MIN_ELEMENT_DOTS = 2
MIN_BARCODE_ELEMENT_DOTS = 5
MIN_MODULE_DOTS = 2
DEFAULT_SYMBOLOGY = "code128"
BARCODE_MIN_HEIGHT_MM = {
	"code128": 11.9,
	"code39": 11.9,
	"ean13": 16.1,
	"ean8": 16.1,
	"upca": 16.1,
}
BARCODE_MIN_QUIET_ZONE_DOTS = {
	"code128": 12,
	"code39": 12,
	"ean13": 12,
	"ean8": 12,
	"upca": 12,
}
BARCODE_RECOMMENDED = {
	"code128": {"module_width_mm": 0.33, "quiet_zone_mm": 2.54, "height_mm": 12.7},
	"code39": {"module_width_mm": 0.33, "quiet_zone_mm": 2.54, "height_mm": 12.7},
	"ean13": {"module_width_mm": 0.33, "quiet_zone_mm": 2.31, "height_mm": 22.85},
	"ean8": {"module_width_mm": 0.33, "quiet_zone_mm": 2.31, "height_mm": 22.85},
	"upca": {"module_width_mm": 0.33, "quiet_zone_mm": 2.31, "height_mm": 22.85},
}
# ReportLab barcode widget names
BARCODE_WIDGETS = {
	"code128": "Code128",
	"code39": "Standard39",
	"ean13": "EAN13",
	"ean8": "EAN8",
	"upca": "UPCA",
}
CODE128_MAX_DATA = 48

CALIBRATION_EXPECTED_HORIZONTAL_MM = 50.0
CALIBRATION_EXPECTED_VERTICAL_MM = 20.0
CALIBRATION_SCALE_MIN = 0.98
CALIBRATION_SCALE_MAX = 1.02
CALIBRATION_OFFSET_MIN_MM = -2.0
CALIBRATION_OFFSET_MAX_MM = 2.0
CALIBRATION_GRID_STEP_MM = 5.0
CALIBRATION_TICK_MM = 1.5
CALIBRATION_TARGET_MM = 3.0
CALIBRATION_RULER_INSET_MM = 2.0

PROGRESS_BAR_WIDTH = 20
PROGRESS_UPDATE_EVERY = 10
HUMAN_READABLE_BAND_PT = 10.0
OUTLINE_WIDTH_PT = 0.3
HTML_NUMBER_PRECISION = 4

DK_PRESET_TOLERANCE_MM = 0.5
PAPER_MATCH_TOLERANCE_TENTHS = 10
BROTHER_DK_PRESETS = (
	{"name": "DK-1201", "width_mm": 29.0, "height_mm": 90.0, "description": "Standard Address Labels"},
	{"name": "DK-1202", "width_mm": 62.0, "height_mm": 100.0, "description": "Shipping/Name Badge Labels"},
	{"name": "DK-1209", "width_mm": 28.9, "height_mm": 62.0, "description": "Small Address Labels"},
	{"name": "DK-11209", "width_mm": 29.0, "height_mm": 62.0, "description": "Small Address Labels"},
	{"name": "DK-11208", "width_mm": 38.0, "height_mm": 90.0, "description": "Large Address Labels"},
	{"name": "DK-1219", "width_mm": 12.0, "height_mm": 0.0, "description": "12mm Continuous Tape"},
	{"name": "DK-1221", "width_mm": 23.0, "height_mm": 0.0, "description": "23mm Continuous Tape"},
	{"name": "DK-1241", "width_mm": 102.0, "height_mm": 152.0, "description": "Large Shipping Labels"},
)


@dataclasses.dataclass
class RenderConfig:
	draw_outlines: bool = False
	diagnostic: bool = False
	font_files: dict[str, str] = dataclasses.field(default_factory=dict)
	embed_autofit_script: bool = True
	verbose: bool = False


@dataclasses.dataclass
class RenderResult:
	labels_rendered: int
	pages: int
	warning_count: int
	skipped_elements: int
	warnings: list = dataclasses.field(default_factory=list)


#============================================
def inches_to_points(value: float) -> float:
	"""
	Convert inches to points.

	Args:
		value: Inches value.

	Returns:
		Points value.
	"""
	return value * POINTS_PER_INCH
