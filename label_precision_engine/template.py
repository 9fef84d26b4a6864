"""
Template layout data model, parsing and hard validation.
"""

# Standard Library
import dataclasses
import json
import math
import pathlib

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config
import label_precision_engine.units


DEFAULT_DPI = lpe.config.DEFAULT_DPI
DEFAULT_MARGIN_MM = lpe.config.DEFAULT_MARGIN_MM
DEFAULT_BACKGROUND = lpe.config.DEFAULT_BACKGROUND
DEFAULT_FONT_FAMILY = lpe.config.DEFAULT_FONT_FAMILY
DEFAULT_TEXT_SIZE = lpe.config.DEFAULT_TEXT_SIZE
DEFAULT_TEXT_WEIGHT = lpe.config.DEFAULT_TEXT_WEIGHT
DEFAULT_TEXT_ALIGN = lpe.config.DEFAULT_TEXT_ALIGN
DEFAULT_TEXT_COLOR = lpe.config.DEFAULT_TEXT_COLOR
DEFAULT_LINE_HEIGHT = lpe.config.DEFAULT_LINE_HEIGHT
DEFAULT_MIN_FONT_SIZE = lpe.config.DEFAULT_MIN_FONT_SIZE
DEFAULT_MAX_LINES = lpe.config.DEFAULT_MAX_LINES
DEFAULT_SYMBOLOGY = lpe.config.DEFAULT_SYMBOLOGY
BARCODE_RECOMMENDED = lpe.config.BARCODE_RECOMMENDED
ELEMENT_TYPES = lpe.config.ELEMENT_TYPES
OVERFLOW_MODES = lpe.config.OVERFLOW_MODES
TEXT_ALIGNMENTS = lpe.config.TEXT_ALIGNMENTS
BROTHER_DK_PRESETS = lpe.config.BROTHER_DK_PRESETS
DK_PRESET_TOLERANCE_MM = lpe.config.DK_PRESET_TOLERANCE_MM
PAPER_MATCH_TOLERANCE_TENTHS = lpe.config.PAPER_MATCH_TOLERANCE_TENTHS


class TemplateError(ValueError):
	"""
	Hard failure in a profile or template, naming the offending field.
	"""

	def __init__(self, field: str, message: str):
		super().__init__(f"{field}: {message}")
		self.field = field


@dataclasses.dataclass(frozen=True)
class PrinterProfile:
	width_mm: float
	height_mm: float
	dpi: int = DEFAULT_DPI
	margin_mm: float = DEFAULT_MARGIN_MM
	background: str = DEFAULT_BACKGROUND
	profile_id: str = ""
	name: str = ""


@dataclasses.dataclass(frozen=True)
class TextStyle:
	font_family: str = DEFAULT_FONT_FAMILY
	font_size_pt: float = DEFAULT_TEXT_SIZE
	font_weight: int = DEFAULT_TEXT_WEIGHT
	italic: bool = False
	align: str = DEFAULT_TEXT_ALIGN
	line_height: float = DEFAULT_LINE_HEIGHT
	color: str = DEFAULT_TEXT_COLOR


@dataclasses.dataclass(frozen=True)
class OverflowPolicy:
	mode: str = "shrink_to_fit"
	min_font_size_pt: float = DEFAULT_MIN_FONT_SIZE
	max_lines: int | None = DEFAULT_MAX_LINES


@dataclasses.dataclass(frozen=True)
class BarcodeParams:
	symbology: str = DEFAULT_SYMBOLOGY
	module_width_mm: float = BARCODE_RECOMMENDED[DEFAULT_SYMBOLOGY]["module_width_mm"]
	quiet_zone_mm: float = BARCODE_RECOMMENDED[DEFAULT_SYMBOLOGY]["quiet_zone_mm"]
	human_readable: bool = False


@dataclasses.dataclass(frozen=True)
class TemplateElement:
	id: str
	type: str
	x_mm: float
	y_mm: float
	w_mm: float
	h_mm: float
	bind: str = ""
	style: TextStyle | None = None
	overflow: OverflowPolicy | None = None
	barcode: BarcodeParams | None = None
	hide_if_empty: bool = False
	fill_color: str = ""
	stroke_color: str = "#000000"
	stroke_width_mm: float = 0.0


@dataclasses.dataclass(frozen=True)
class TemplateLayout:
	meta: PrinterProfile
	elements: tuple[TemplateElement, ...] = ()
	name: str = ""


@dataclasses.dataclass(frozen=True)
class LayoutWarning:
	severity: str
	code: str
	message: str
	element_id: str | None = None


#============================================
def _require_number(value, field: str) -> float:
	"""
	Coerce a raw value into a finite float.

	Args:
		value: Raw value from JSON or user input.
		field: Field path for error reporting.

	Returns:
		Float value.
	"""
	if isinstance(value, bool):
		raise TemplateError(field, f"expected a number, got {value!r}")
	try:
		number = float(value)
	except (TypeError, ValueError):
		raise TemplateError(field, f"expected a number, got {value!r}") from None
	if not math.isfinite(number):
		raise TemplateError(field, f"expected a finite number, got {value!r}")
	return number


#============================================
def validate_profile(profile: PrinterProfile, prefix: str = "meta") -> None:
	"""
	Reject profiles that cannot describe a physical label.

	Args:
		profile: Printer profile.
		prefix: Field path prefix for errors.
	"""
	for name in ("width_mm", "height_mm", "dpi"):
		value = _require_number(getattr(profile, name), f"{prefix}.{name}")
		if value <= 0:
			raise TemplateError(f"{prefix}.{name}", f"must be positive, got {value}")
	margin = _require_number(profile.margin_mm, f"{prefix}.margin_mm")
	if margin < 0:
		raise TemplateError(f"{prefix}.margin_mm", f"must not be negative, got {margin}")


#============================================
def validate_element(element: TemplateElement, index: int) -> None:
	"""
	Reject elements whose geometry or policy cannot be laid out.

	Negative or off-canvas positions are not errors here; the layout
	checker reports them as warnings.

	Args:
		element: Template element.
		index: Position in the layout, for error reporting.
	"""
	prefix = f"elements[{index}]"
	if element.type not in ELEMENT_TYPES:
		raise TemplateError(f"{prefix}.type", f"unknown element type {element.type!r}")
	for name in ("x_mm", "y_mm"):
		_require_number(getattr(element, name), f"{prefix}.{name}")
	for name in ("w_mm", "h_mm"):
		value = _require_number(getattr(element, name), f"{prefix}.{name}")
		if value <= 0:
			raise TemplateError(f"{prefix}.{name}", f"must be positive, got {value}")
	if element.overflow is not None:
		if element.overflow.mode not in OVERFLOW_MODES:
			raise TemplateError(
				f"{prefix}.overflow.mode",
				f"unknown overflow mode {element.overflow.mode!r}",
			)
		min_size = _require_number(element.overflow.min_font_size_pt, f"{prefix}.overflow.min_font_size_pt")
		if min_size <= 0:
			raise TemplateError(f"{prefix}.overflow.min_font_size_pt", f"must be positive, got {min_size}")
		if element.overflow.max_lines is not None and element.overflow.max_lines < 1:
			raise TemplateError(f"{prefix}.overflow.max_lines", "must be at least 1")
	if element.style is not None:
		size = _require_number(element.style.font_size_pt, f"{prefix}.style.font_size_pt")
		if size <= 0:
			raise TemplateError(f"{prefix}.style.font_size_pt", f"must be positive, got {size}")
		if element.style.align not in TEXT_ALIGNMENTS:
			raise TemplateError(f"{prefix}.style.align", f"unknown alignment {element.style.align!r}")
	if element.barcode is not None:
		for name in ("module_width_mm", "quiet_zone_mm"):
			value = _require_number(getattr(element.barcode, name), f"{prefix}.barcode.{name}")
			if value <= 0:
				raise TemplateError(f"{prefix}.barcode.{name}", f"must be positive, got {value}")


#============================================
def validate_layout(layout: TemplateLayout) -> None:
	"""
	Run every hard check on a layout.

	Args:
		layout: Template layout.
	"""
	validate_profile(layout.meta)
	for index, element in enumerate(layout.elements):
		validate_element(element, index)


#============================================
def parse_profile(data: dict, prefix: str = "meta") -> PrinterProfile:
	"""
	Build a printer profile from a JSON-style dict.

	Args:
		data: Profile dict.
		prefix: Field path prefix for errors.

	Returns:
		Validated PrinterProfile.
	"""
	if not isinstance(data, dict):
		raise TemplateError(prefix, "expected an object")
	for name in ("width_mm", "height_mm"):
		if name not in data:
			raise TemplateError(f"{prefix}.{name}", "missing")
	dpi = _require_number(data.get("dpi", DEFAULT_DPI), f"{prefix}.dpi")
	profile = PrinterProfile(
		width_mm=_require_number(data["width_mm"], f"{prefix}.width_mm"),
		height_mm=_require_number(data["height_mm"], f"{prefix}.height_mm"),
		dpi=int(dpi) if dpi == int(dpi) else dpi,
		margin_mm=_require_number(data.get("margin_mm", DEFAULT_MARGIN_MM), f"{prefix}.margin_mm"),
		background=str(data.get("bg", data.get("background", DEFAULT_BACKGROUND))),
		profile_id=str(data.get("profile_id", data.get("id", ""))),
		name=str(data.get("name", "")),
	)
	validate_profile(profile, prefix)
	return profile


#============================================
def parse_text_style(data: dict, prefix: str = "style") -> TextStyle:
	"""
	Build a text style from a JSON-style dict.

	Args:
		data: Style dict.
		prefix: Field path prefix for errors.

	Returns:
		TextStyle.
	"""
	return TextStyle(
		font_family=str(data.get("font_family", DEFAULT_FONT_FAMILY)),
		font_size_pt=_require_number(data.get("font_size_pt", DEFAULT_TEXT_SIZE), f"{prefix}.font_size_pt"),
		font_weight=int(_require_number(data.get("font_weight", DEFAULT_TEXT_WEIGHT), f"{prefix}.font_weight")),
		italic=bool(data.get("italic", False)),
		align=str(data.get("align", DEFAULT_TEXT_ALIGN)).lower(),
		line_height=_require_number(data.get("line_height", DEFAULT_LINE_HEIGHT), f"{prefix}.line_height"),
		color=str(data.get("color", DEFAULT_TEXT_COLOR)),
	)


#============================================
def parse_element(data: dict, index: int) -> TemplateElement:
	"""
	Build a template element from a JSON-style dict.

	Args:
		data: Element dict.
		index: Position in the layout.

	Returns:
		Validated TemplateElement.
	"""
	prefix = f"elements[{index}]"
	if not isinstance(data, dict):
		raise TemplateError(prefix, "expected an object")
	for name in ("type", "x_mm", "y_mm", "w_mm", "h_mm"):
		if name not in data:
			raise TemplateError(f"{prefix}.{name}", "missing")
	element_type = str(data["type"]).lower()

	style = None
	overflow = None
	barcode = None
	if element_type == "text":
		style = parse_text_style(data.get("style") or {}, f"{prefix}.style")
		overflow_data = data.get("overflow") or {}
		max_lines = overflow_data.get("max_lines", DEFAULT_MAX_LINES)
		overflow = OverflowPolicy(
			mode=str(overflow_data.get("mode", "shrink_to_fit")),
			min_font_size_pt=_require_number(
				overflow_data.get("min_font_size_pt", DEFAULT_MIN_FONT_SIZE),
				f"{prefix}.overflow.min_font_size_pt",
			),
			max_lines=int(_require_number(max_lines, f"{prefix}.overflow.max_lines")) if max_lines is not None else None,
		)
	elif element_type == "barcode":
		barcode_data = data.get("barcode") or {}
		symbology = str(barcode_data.get("symbology", DEFAULT_SYMBOLOGY)).lower()
		recommended = BARCODE_RECOMMENDED.get(symbology, BARCODE_RECOMMENDED[DEFAULT_SYMBOLOGY])
		barcode = BarcodeParams(
			symbology=symbology,
			module_width_mm=_require_number(
				barcode_data.get("module_width_mm", recommended["module_width_mm"]),
				f"{prefix}.barcode.module_width_mm",
			),
			quiet_zone_mm=_require_number(
				barcode_data.get("quiet_zone_mm", recommended["quiet_zone_mm"]),
				f"{prefix}.barcode.quiet_zone_mm",
			),
			human_readable=bool(barcode_data.get("human_readable", False)),
		)

	visibility = data.get("visibility") or {}
	element = TemplateElement(
		id=str(data.get("id", f"el-{index}")),
		type=element_type,
		x_mm=_require_number(data["x_mm"], f"{prefix}.x_mm"),
		y_mm=_require_number(data["y_mm"], f"{prefix}.y_mm"),
		w_mm=_require_number(data["w_mm"], f"{prefix}.w_mm"),
		h_mm=_require_number(data["h_mm"], f"{prefix}.h_mm"),
		bind=str(data.get("bind") or ""),
		style=style,
		overflow=overflow,
		barcode=barcode,
		hide_if_empty=bool(visibility.get("hide_if_empty", data.get("hide_if_empty", False))),
		fill_color=str(data.get("fill_color", "")),
		stroke_color=str(data.get("stroke_color", "#000000")),
		stroke_width_mm=_require_number(data.get("stroke_width_mm", 0.0), f"{prefix}.stroke_width_mm"),
	)
	validate_element(element, index)
	return element


#============================================
def parse_layout(data: dict) -> TemplateLayout:
	"""
	Build a template layout from a JSON-style dict.

	Args:
		data: Dict with "meta" and "elements".

	Returns:
		Validated TemplateLayout.
	"""
	if not isinstance(data, dict):
		raise TemplateError("layout", "expected an object")
	if "meta" not in data:
		raise TemplateError("meta", "missing")
	meta = parse_profile(data["meta"])
	raw_elements = data.get("elements") or []
	if not isinstance(raw_elements, list):
		raise TemplateError("elements", "expected a list")
	elements = tuple(parse_element(item, index) for index, item in enumerate(raw_elements))
	return TemplateLayout(meta=meta, elements=elements, name=str(data.get("name", "")))


#============================================
def load_layout(path: pathlib.Path) -> TemplateLayout:
	"""
	Load a template layout JSON file.

	Args:
		path: JSON path.

	Returns:
		TemplateLayout.
	"""
	text = pathlib.Path(path).read_text(encoding="utf-8")
	return parse_layout(json.loads(text))


#============================================
def load_profile(path: pathlib.Path) -> PrinterProfile:
	"""
	Load a printer profile JSON file. Accepts either a bare profile or
	a full template, in which case its meta block is used.

	Args:
		path: JSON path.

	Returns:
		PrinterProfile.
	"""
	data = json.loads(pathlib.Path(path).read_text(encoding="utf-8"))
	if isinstance(data, dict) and "meta" in data:
		return parse_profile(data["meta"])
	return parse_profile(data, prefix="profile")


#============================================
def match_dk_preset(width_mm: float, height_mm: float) -> dict | None:
	"""
	Find the Brother DK roll matching a label size.

	Continuous tapes (preset height 0) match any length.

	Args:
		width_mm: Label width.
		height_mm: Label height.

	Returns:
		Preset dict or None.
	"""
	for preset in BROTHER_DK_PRESETS:
		if abs(preset["width_mm"] - width_mm) > DK_PRESET_TOLERANCE_MM:
			continue
		if preset["height_mm"] == 0.0 or abs(preset["height_mm"] - height_mm) <= DK_PRESET_TOLERANCE_MM:
			return preset
	return None


#============================================
def find_paper_match(
	papers: dict[str, tuple[int | None, int | None]],
	width_mm: float,
	height_mm: float,
	tolerance: int = PAPER_MATCH_TOLERANCE_TENTHS,
) -> tuple[str, int] | None:
	"""
	Find a printer paper entry matching the label size.

	Args:
		papers: Paper sizes keyed by name, in tenths of a millimeter.
		width_mm: Label width.
		height_mm: Label height.
		tolerance: Allowed difference in tenths of a millimeter.

	Returns:
		Tuple of (paper name, rotation degrees) or None.
	"""
	target_w = lpe.units.mm_to_tenths(width_mm)
	target_h = lpe.units.mm_to_tenths(height_mm)

	def is_match(paper_w, paper_h, want_w: int, want_h: int) -> bool:
		if paper_w is None or paper_h is None:
			return False
		return abs(paper_w - want_w) <= tolerance and abs(paper_h - want_h) <= tolerance

	for name, (paper_w, paper_h) in papers.items():
		if is_match(paper_w, paper_h, target_w, target_h):
			return (name, 0)
		if is_match(paper_w, paper_h, target_h, target_w):
			return (name, 90)
	return None
