"""
Text autofit: pick the largest dot-exact font size at which text fits its box.

The bisection in fit_text_to_box() takes its text metrics from a
provider object, so the same loop runs headless (ReportLab font
metrics) and in a browser (DOM measurement, see build_autofit_script()).
Both contexts use the same iteration count, snapping and bracket
update, which keeps preview and print decisions identical as long as
the font itself is identical.
"""

# Standard Library
import dataclasses

# PIP3 modules
import reportlab.pdfbase._fontdata
import reportlab.pdfbase.pdfmetrics

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config
import label_precision_engine.grid
import label_precision_engine.template
import label_precision_engine.units


TextStyle = lpe.template.TextStyle
OverflowPolicy = lpe.template.OverflowPolicy

DEFAULT_DPI = lpe.config.DEFAULT_DPI
DEFAULT_LINE_HEIGHT = lpe.config.DEFAULT_LINE_HEIGHT
DEFAULT_FONT_REGULAR = lpe.config.DEFAULT_FONT_REGULAR
DEFAULT_FONT_BOLD = lpe.config.DEFAULT_FONT_BOLD
DEFAULT_FONT_ITALIC = lpe.config.DEFAULT_FONT_ITALIC
DEFAULT_FONT_BOLD_ITALIC = lpe.config.DEFAULT_FONT_BOLD_ITALIC
DEFAULT_MIN_FONT_SIZE = lpe.config.DEFAULT_MIN_FONT_SIZE
AUTOFIT_ITERATIONS = lpe.config.AUTOFIT_ITERATIONS
AUTOFIT_TOLERANCE = lpe.config.AUTOFIT_TOLERANCE
ELLIPSIS = lpe.config.ELLIPSIS

snap_font_size_pt = lpe.grid.snap_font_size_pt


@dataclasses.dataclass(frozen=True)
class TextMeasurement:
	width: float
	height: float
	lines: tuple[str, ...]

	@property
	def line_count(self) -> int:
		return len(self.lines)


@dataclasses.dataclass(frozen=True)
class FitResult:
	font_size_pt: float
	lines: tuple[str, ...]
	truncated: bool = False
	warning: str | None = None


class ReportLabTextMetrics:
	"""
	Headless text metrics backed by ReportLab font tables.

	Standard PDF fonts and registered TrueType fonts are both measured
	from their embedded metrics, never from a substituted system font.
	"""

	def __init__(
		self,
		font_name: str = DEFAULT_FONT_REGULAR,
		line_height: float = DEFAULT_LINE_HEIGHT,
		dpi: float | None = None,
	):
		self.font_name = font_name
		self.line_height = line_height
		self.dpi = dpi

	def line_width(self, text: str, font_size_pt: float) -> float:
		return reportlab.pdfbase.pdfmetrics.stringWidth(text, self.font_name, font_size_pt)

	def line_advance(self, font_size_pt: float) -> float:
		advance = font_size_pt * self.line_height
		if self.dpi is None:
			return advance
		# whole dots per line so baselines stay on the grid
		step = lpe.units.pt_per_dot(self.dpi)
		return max(1, lpe.units.round_half_up(advance / step)) * step

	def wrap(self, text: str, font_size_pt: float, max_width: float) -> list[str]:
		"""
		Greedy word wrap, keeping explicit newlines.

		A single word wider than max_width stays on its own line and
		overflows, the same as pre-wrap text in a browser.

		Args:
			text: Input text.
			font_size_pt: Font size in points.
			max_width: Maximum line width in points.

		Returns:
			Wrapped lines.
		"""
		lines: list[str] = []
		for paragraph in text.splitlines() or [""]:
			words = paragraph.split()
			if not words:
				lines.append("")
				continue
			current = ""
			for word in words:
				candidate = word if not current else f"{current} {word}"
				if self.line_width(candidate, font_size_pt) <= max_width or not current:
					current = candidate
					continue
				lines.append(current)
				current = word
			lines.append(current)
		return lines

	def measure(self, text: str, font_size_pt: float, box_width: float) -> TextMeasurement:
		"""
		Measure wrapped text at a font size.

		Args:
			text: Input text.
			font_size_pt: Font size in points.
			box_width: Wrap width in points.

		Returns:
			TextMeasurement in points.
		"""
		lines = self.wrap(text, font_size_pt, box_width)
		width = max((self.line_width(line, font_size_pt) for line in lines), default=0.0)
		height = self.line_advance(font_size_pt) * len(lines)
		return TextMeasurement(width=width, height=height, lines=tuple(lines))


#============================================
def map_font_name(font_family: str, weight: int, italic: bool) -> str:
	"""
	Map a style's font family to a ReportLab font name.

	Registered TrueType fonts are used as-is. Other families map onto
	the standard PDF fonts so metrics come from the embedded tables.

	Args:
		font_family: Style font family.
		weight: Font weight.
		italic: Italic flag.

	Returns:
		ReportLab font name.
	"""
	standard = font_family in reportlab.pdfbase._fontdata.standardFonts
	if not standard and font_family in reportlab.pdfbase.pdfmetrics.getRegisteredFontNames():
		return font_family
	is_bold = weight >= 600
	family = (font_family or "").strip().lower()
	if family.startswith("times"):
		variants = ("Times-Roman", "Times-Bold", "Times-Italic", "Times-BoldItalic")
	elif family.startswith("courier") or family == "monospace":
		variants = ("Courier", "Courier-Bold", "Courier-Oblique", "Courier-BoldOblique")
	else:
		variants = (DEFAULT_FONT_REGULAR, DEFAULT_FONT_BOLD, DEFAULT_FONT_ITALIC, DEFAULT_FONT_BOLD_ITALIC)
	if italic and is_bold:
		return variants[3]
	if italic:
		return variants[2]
	if is_bold:
		return variants[1]
	return variants[0]


#============================================
def metrics_for_style(style: TextStyle, dpi: float = DEFAULT_DPI) -> ReportLabTextMetrics:
	font_name = map_font_name(style.font_family, style.font_weight, style.italic)
	return ReportLabTextMetrics(font_name, style.line_height, dpi)


#============================================
def tolerance_pt(dpi: float = DEFAULT_DPI, fraction: float = AUTOFIT_TOLERANCE) -> float:
	"""
	Allowed overflow for headless measurement, in points.
	"""
	return lpe.units.pt_per_dot(dpi) * fraction


#============================================
def tolerance_css_px(dpi: float = DEFAULT_DPI, fraction: float = AUTOFIT_TOLERANCE) -> float:
	"""
	Allowed overflow for browser measurement, in CSS pixels.

	Same physical length as tolerance_pt(), so both contexts accept
	the same overflow before rejecting a size.

	Args:
		dpi: Printer resolution.
		fraction: Fraction of one dot.

	Returns:
		CSS pixels.
	"""
	return lpe.units.mm_to_css_px(lpe.units.dot_mm(dpi) * fraction)


#============================================
def measurement_fits(
	measurement: TextMeasurement,
	box_width: float,
	box_height: float,
	max_lines: int | None,
	tolerance: float,
) -> bool:
	"""
	Check whether measured text fits its box.

	Args:
		measurement: Measured text.
		box_width: Box width in points.
		box_height: Box height in points.
		max_lines: Optional line limit.
		tolerance: Allowed overflow in points.

	Returns:
		True if the text fits.
	"""
	if measurement.width > box_width + tolerance:
		return False
	if measurement.height > box_height + tolerance:
		return False
	if max_lines is not None and measurement.line_count > max_lines:
		return False
	return True


#============================================
def fit_text_to_box(
	text: str,
	box_width: float,
	box_height: float,
	min_pt: float,
	max_pt: float,
	metrics,
	max_lines: int | None = None,
	dpi: float = DEFAULT_DPI,
	iterations: int = AUTOFIT_ITERATIONS,
) -> FitResult:
	"""
	Bisect for the largest dot-snapped font size that fits the box.

	Each trial size is snapped to whole dots before it is measured, and
	the committed size is the snapped value of the last size that fit.
	When nothing fits the minimum size is used and a warning is set.

	Args:
		text: Text to fit.
		box_width: Box width in points.
		box_height: Box height in points.
		min_pt: Smallest acceptable font size.
		max_pt: Largest (design) font size.
		metrics: Text metrics provider with a measure() method.
		max_lines: Optional line limit.
		dpi: Printer resolution, sets the font size step.
		iterations: Fixed bisection budget.

	Returns:
		FitResult with the chosen size and its wrapped lines.
	"""
	if max_pt < min_pt:
		min_pt, max_pt = max_pt, min_pt
	if not text or not text.strip():
		return FitResult(font_size_pt=snap_font_size_pt(max_pt, dpi), lines=())

	tolerance = tolerance_pt(dpi)
	low = min_pt
	high = max_pt
	best = min_pt
	found = False
	for _ in range(iterations):
		mid = (low + high) / 2.0
		trial = snap_font_size_pt(mid, dpi)
		measurement = metrics.measure(text, trial, box_width)
		if measurement_fits(measurement, box_width, box_height, max_lines, tolerance):
			best = mid
			low = mid
			found = True
		else:
			high = mid

	font_size = snap_font_size_pt(best, dpi)
	final = metrics.measure(text, font_size, box_width)
	warning = None
	if not found:
		warning = f"Text does not fit; font size held at minimum ({font_size:.2f}pt)"
	return FitResult(font_size_pt=font_size, lines=final.lines, warning=warning)


#============================================
def ellipsize_line(line: str, font_size_pt: float, box_width: float, metrics, tolerance: float) -> str:
	"""
	Trim a line until it fits with a trailing ellipsis.

	Args:
		line: Line text.
		font_size_pt: Font size in points.
		box_width: Box width in points.
		metrics: Text metrics provider.
		tolerance: Allowed overflow in points.

	Returns:
		Trimmed line ending in an ellipsis.
	"""
	trimmed = line.rstrip()
	while trimmed:
		candidate = trimmed.rstrip() + ELLIPSIS
		if metrics.line_width(candidate, font_size_pt) <= box_width + tolerance:
			return candidate
		trimmed = trimmed[:-1]
	return ELLIPSIS


#============================================
def fixed_size_layout(
	text: str,
	box_width: float,
	box_height: float,
	font_size_pt: float,
	mode: str,
	metrics,
	max_lines: int | None = None,
	dpi: float = DEFAULT_DPI,
) -> FitResult:
	"""
	Lay out text at a fixed size, cutting lines that do not fit.

	wrap_lines keeps as many whole lines as the box height (and
	max_lines) allows. ellipsis does the same, then ends the last kept
	line with an ellipsis, and also shortens single lines that are
	wider than the box.

	Args:
		text: Text to lay out.
		box_width: Box width in points.
		box_height: Box height in points.
		font_size_pt: Design font size.
		mode: "wrap_lines" or "ellipsis".
		metrics: Text metrics provider.
		max_lines: Optional line limit.
		dpi: Printer resolution.

	Returns:
		FitResult.
	"""
	font_size = snap_font_size_pt(font_size_pt, dpi)
	if not text or not text.strip():
		return FitResult(font_size_pt=font_size, lines=())
	tolerance = tolerance_pt(dpi)
	lines = list(metrics.wrap(text, font_size, box_width))
	advance = metrics.line_advance(font_size)
	capacity = max(1, int((box_height + tolerance) // advance)) if advance > 0 else len(lines)
	limit = capacity if max_lines is None else min(capacity, max_lines)

	truncated = len(lines) > limit
	kept = lines[:limit]
	if mode == "ellipsis":
		for index, line in enumerate(kept):
			last = index == len(kept) - 1
			too_wide = metrics.line_width(line, font_size) > box_width + tolerance
			if too_wide or (last and truncated):
				kept[index] = ellipsize_line(line, font_size, box_width, metrics, tolerance)
				truncated = True

	warning = None
	if truncated:
		warning = f"Text truncated to {len(kept)} line(s) at {font_size:.2f}pt"
	return FitResult(font_size_pt=font_size, lines=tuple(kept), truncated=truncated, warning=warning)


#============================================
def resolve_text(
	text: str,
	box_width: float,
	box_height: float,
	style: TextStyle,
	overflow: OverflowPolicy,
	metrics,
	dpi: float = DEFAULT_DPI,
) -> FitResult:
	"""
	Apply an element's overflow policy to its resolved text.

	Args:
		text: Resolved text.
		box_width: Box width in points.
		box_height: Box height in points.
		style: Text style (font_size_pt is the design and maximum size).
		overflow: Overflow policy.
		metrics: Text metrics provider.
		dpi: Printer resolution.

	Returns:
		FitResult.
	"""
	if overflow.mode == "shrink_to_fit":
		return fit_text_to_box(
			text,
			box_width,
			box_height,
			overflow.min_font_size_pt,
			style.font_size_pt,
			metrics,
			max_lines=overflow.max_lines,
			dpi=dpi,
		)
	return fixed_size_layout(
		text,
		box_width,
		box_height,
		style.font_size_pt,
		overflow.mode,
		metrics,
		max_lines=overflow.max_lines,
		dpi=dpi,
	)


#============================================
def build_autofit_script(
	dpi: float = DEFAULT_DPI,
	iterations: int = AUTOFIT_ITERATIONS,
	tolerance: float = AUTOFIT_TOLERANCE,
	default_min_pt: float = DEFAULT_MIN_FONT_SIZE,
) -> str:
	"""
	Build the browser-side twin of fit_text_to_box().

	The routine is embedded in rendered HTML so an interactive preview
	and a headless print browser both run it against elements with the
	"autofit" class and data-minpt / data-maxpt / data-maxlines
	attributes.

	Args:
		dpi: Printer resolution.
		iterations: Fixed bisection budget.
		tolerance: Allowed overflow as a fraction of one dot.
		default_min_pt: Minimum size when data-minpt is absent.

	Returns:
		JavaScript source, wrapped in an immediately invoked function.
	"""
	pt_per_dot = lpe.units.POINTS_PER_INCH / dpi
	tolerance_px = tolerance_css_px(dpi, tolerance)
	return f"""(function(){{
  var PT_PER_DOT = {pt_per_dot!r};
  var ITERATIONS = {int(iterations)};
  var TOLERANCE = {tolerance_px!r};
  function snapPt(pt){{ return Math.round(pt / PT_PER_DOT) * PT_PER_DOT; }}
  function fits(el, maxLines){{
    var r = el.getBoundingClientRect();
    if (el.scrollWidth > r.width + TOLERANCE || el.scrollHeight > r.height + TOLERANCE) {{ return false; }}
    if (!maxLines) {{ return true; }}
    var lineHeight = parseFloat(window.getComputedStyle(el).lineHeight);
    return !lineHeight || Math.round(el.scrollHeight / lineHeight) <= maxLines;
  }}
  document.querySelectorAll('.autofit').forEach(function(el){{
    var min = +el.dataset.minpt || {default_min_pt!r};
    var max = +el.dataset.maxpt || min;
    var maxLines = +el.dataset.maxlines || 0;
    if (max < min) {{ var swap = min; min = max; max = swap; }}
    var lo = min, hi = max, best = min;
    for (var i = 0; i < ITERATIONS; i++) {{
      var mid = (lo + hi) / 2;
      el.style.fontSize = snapPt(mid) + 'pt';
      if (fits(el, maxLines)) {{ best = mid; lo = mid; }} else {{ hi = mid; }}
    }}
    el.style.fontSize = snapPt(best) + 'pt';
  }});
}})();"""
