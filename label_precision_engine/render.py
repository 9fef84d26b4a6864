"""
Rendering of resolved labels and calibration cards.

Every coordinate drawn here comes from whole printer dots, so edges in
the PDF land exactly on dot boundaries when rasterized at the printer
DPI. Page origin is bottom-left in PDF and top-left in the layout.
"""

# Standard Library
import html
import io
import json
import math
import pathlib

# PIP3 modules
import PIL.Image
import pypdf
import reportlab.graphics.barcode
import reportlab.graphics.renderPDF
import reportlab.graphics.renderSVG
import reportlab.lib.utils
import reportlab.pdfbase.pdfmetrics
import reportlab.pdfbase.ttfonts
import reportlab.pdfgen.canvas

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.autofit
import label_precision_engine.barcode
import label_precision_engine.calibration
import label_precision_engine.config
import label_precision_engine.grid
import label_precision_engine.resolve
import label_precision_engine.template
import label_precision_engine.units


PrinterProfile = lpe.template.PrinterProfile
TextStyle = lpe.template.TextStyle
OverflowPolicy = lpe.template.OverflowPolicy
BarcodeParams = lpe.template.BarcodeParams
LayoutWarning = lpe.template.LayoutWarning
ResolvedLabel = lpe.resolve.ResolvedLabel
ResolvedElement = lpe.resolve.ResolvedElement
RenderConfig = lpe.config.RenderConfig
RenderResult = lpe.config.RenderResult

DEFAULT_FONT_REGULAR = lpe.config.DEFAULT_FONT_REGULAR
DEFAULT_BACKGROUND = lpe.config.DEFAULT_BACKGROUND
BARCODE_WIDGETS = lpe.config.BARCODE_WIDGETS
HUMAN_READABLE_BAND_PT = lpe.config.HUMAN_READABLE_BAND_PT
OUTLINE_WIDTH_PT = lpe.config.OUTLINE_WIDTH_PT
HTML_NUMBER_PRECISION = lpe.config.HTML_NUMBER_PRECISION
PROGRESS_BAR_WIDTH = lpe.config.PROGRESS_BAR_WIDTH
PROGRESS_UPDATE_EVERY = lpe.config.PROGRESS_UPDATE_EVERY
SEVERITY_WARNING = lpe.config.SEVERITY_WARNING
CALIBRATION_GRID_STEP_MM = lpe.config.CALIBRATION_GRID_STEP_MM
CALIBRATION_TICK_MM = lpe.config.CALIBRATION_TICK_MM
CALIBRATION_TARGET_MM = lpe.config.CALIBRATION_TARGET_MM
CALIBRATION_RULER_INSET_MM = lpe.config.CALIBRATION_RULER_INSET_MM

# check digit is computed by the barcode widget
PAYLOAD_DIGITS = {
	"ean13": 12,
	"ean8": 7,
	"upca": 11,
}


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


#============================================
def parse_hex_color(value: str) -> tuple[float, float, float]:
	"""
	Parse a hex color string into RGB floats.

	Args:
		value: Color string like "#AABBCC" or "#ABC".

	Returns:
		Tuple of (r, g, b) in 0.0-1.0 range, black when unparseable.
	"""
	if not value or not value.startswith("#"):
		return (0.0, 0.0, 0.0)
	digits = value[1:]
	if len(digits) == 3:
		digits = "".join(char * 2 for char in digits)
	if len(digits) != 6:
		return (0.0, 0.0, 0.0)
	try:
		red = int(digits[0:2], 16) / 255.0
		green = int(digits[2:4], 16) / 255.0
		blue = int(digits[4:6], 16) / 255.0
	except ValueError:
		return (0.0, 0.0, 0.0)
	return (red, green, blue)


#============================================
def register_fonts(font_files: dict[str, str]) -> list[str]:
	"""
	Register TrueType fonts so they are measured and embedded.

	Must run before layouts are resolved, otherwise autofit measures
	with the fallback font.

	Args:
		font_files: Font paths keyed by font family name.

	Returns:
		Registered font names.
	"""
	registered = set(reportlab.pdfbase.pdfmetrics.getRegisteredFontNames())
	names: list[str] = []
	for name, path in sorted(font_files.items()):
		if name not in registered:
			reportlab.pdfbase.pdfmetrics.registerFont(reportlab.pdfbase.ttfonts.TTFont(name, str(path)))
		names.append(name)
	return names


#============================================
def dots_to_pdf_rect(
	x_dots: int,
	y_dots: int,
	w_dots: int,
	h_dots: int,
	page_height_dots: int,
	dpi: float,
) -> tuple[float, float, float, float]:
	"""
	Convert a top-left dot rectangle into a PDF rectangle.

	Args:
		x_dots: Left edge in dots.
		y_dots: Top edge in dots, from the top of the label.
		w_dots: Width in dots.
		h_dots: Height in dots.
		page_height_dots: Label height in dots.
		dpi: Printer resolution.

	Returns:
		Tuple of (x, y, width, height) in points, bottom-left origin.
	"""
	step = lpe.units.pt_per_dot(dpi)
	return (
		x_dots * step,
		(page_height_dots - y_dots - h_dots) * step,
		w_dots * step,
		h_dots * step,
	)


#============================================
def fill_dot_rect(
	pdf: reportlab.pdfgen.canvas.Canvas,
	x_dots: int,
	y_dots: int,
	w_dots: int,
	h_dots: int,
	page_height_dots: int,
	dpi: float,
) -> None:
	if w_dots <= 0 or h_dots <= 0:
		return
	x, y, width, height = dots_to_pdf_rect(x_dots, y_dots, w_dots, h_dots, page_height_dots, dpi)
	pdf.rect(x, y, width, height, stroke=0, fill=1)


#============================================
def set_fill(pdf: reportlab.pdfgen.canvas.Canvas, color: str) -> None:
	red, green, blue = parse_hex_color(color)
	pdf.setFillColorRGB(red, green, blue)


#============================================
def draw_box_element(
	pdf: reportlab.pdfgen.canvas.Canvas,
	item: ResolvedElement,
	label: ResolvedLabel,
) -> None:
	"""
	Draw a box element as filled dot rectangles.

	The border is drawn as four inner strips of whole dots rather than a
	centered stroke, so both edges of every strip stay on the grid.

	Args:
		pdf: ReportLab canvas.
		item: Resolved box element.
		label: Resolved label.
	"""
	element = item.element
	dpi = label.dpi
	if element.fill_color:
		set_fill(pdf, element.fill_color)
		fill_dot_rect(pdf, item.x_dots, item.y_dots, item.w_dots, item.h_dots, label.height_dots, dpi)
	if element.stroke_width_mm <= 0:
		return
	stroke = max(1, lpe.units.mm_to_dots(element.stroke_width_mm, dpi))
	stroke = max(1, min(stroke, item.w_dots // 2, item.h_dots // 2))
	set_fill(pdf, element.stroke_color)
	right = item.x_dots + item.w_dots - stroke
	bottom = item.y_dots + item.h_dots - stroke
	fill_dot_rect(pdf, item.x_dots, item.y_dots, item.w_dots, stroke, label.height_dots, dpi)
	fill_dot_rect(pdf, item.x_dots, bottom, item.w_dots, stroke, label.height_dots, dpi)
	fill_dot_rect(pdf, item.x_dots, item.y_dots, stroke, item.h_dots, label.height_dots, dpi)
	fill_dot_rect(pdf, right, item.y_dots, stroke, item.h_dots, label.height_dots, dpi)


#============================================
def draw_text_element(
	pdf: reportlab.pdfgen.canvas.Canvas,
	item: ResolvedElement,
	label: ResolvedLabel,
) -> None:
	"""
	Draw the autofit-resolved lines of a text element.

	Args:
		pdf: ReportLab canvas.
		item: Resolved text element.
		label: Resolved label.
	"""
	fit = item.fit
	if fit is None or not fit.lines:
		return
	style = item.element.style or TextStyle()
	font_size = fit.font_size_pt
	pdf.setFont(item.font_name, font_size)
	set_fill(pdf, style.color)

	x, y, width, height = dots_to_pdf_rect(
		item.x_dots, item.y_dots, item.w_dots, item.h_dots, label.height_dots, label.dpi
	)
	top = y + height
	ascent, descent = reportlab.pdfbase.pdfmetrics.getAscentDescent(item.font_name, font_size)
	half_leading = (item.line_advance_pt - (ascent - descent)) / 2.0

	for index, line in enumerate(fit.lines):
		line_width = pdf.stringWidth(line, item.font_name, font_size)
		if style.align == "center":
			text_x = x + (width - line_width) / 2.0
		elif style.align == "right":
			text_x = x + width - line_width
		else:
			text_x = x
		baseline = top - half_leading - ascent - index * item.line_advance_pt
		pdf.drawString(text_x, baseline, line)


#============================================
def barcode_payload(value: str, symbology: str) -> str:
	digits = PAYLOAD_DIGITS.get(symbology)
	if digits is None:
		return value
	return value.strip()[:digits]


#============================================
def is_printable_barcode(item: ResolvedElement) -> bool:
	"""
	Check that the barcode widget can encode the bound value.

	Overlong Code128 data still prints; fixed-length symbologies with
	bad data and empty values do not.

	Args:
		item: Resolved barcode element.

	Returns:
		True if the barcode can be drawn.
	"""
	if not item.value or not item.value.strip():
		return False
	if item.symbology in PAYLOAD_DIGITS:
		return not lpe.barcode.check_barcode_data(item.value, item.symbology)
	return True


#============================================
def build_barcode_drawing(item: ResolvedElement, dpi: float):
	"""
	Build the barcode symbol at the resolved module width.

	Args:
		item: Resolved barcode element.
		dpi: Printer resolution.

	Returns:
		ReportLab Drawing.
	"""
	params = item.element.barcode or BarcodeParams()
	bar_height_dots = item.h_dots
	if params.human_readable:
		band_dots = lpe.units.mm_to_dots(lpe.units.points_to_mm(HUMAN_READABLE_BAND_PT), dpi)
		bar_height_dots = max(1, bar_height_dots - band_dots)
	return reportlab.graphics.barcode.createBarcodeDrawing(
		BARCODE_WIDGETS[item.symbology],
		value=barcode_payload(item.value, item.symbology),
		barWidth=lpe.units.dots_to_points(item.module_dots, dpi),
		barHeight=lpe.units.dots_to_points(bar_height_dots, dpi),
		humanReadable=params.human_readable,
		quiet=False,
	)


#============================================
def barcode_offset_dots(item: ResolvedElement, symbol_width_pt: float, dpi: float) -> tuple[int, bool]:
	"""
	Left offset of the symbol inside its box, in whole dots.

	Args:
		item: Resolved barcode element.
		symbol_width_pt: Symbol width without quiet zones.
		dpi: Printer resolution.

	Returns:
		Tuple of (offset dots, fits flag).
	"""
	symbol_dots = math.ceil(symbol_width_pt / lpe.units.pt_per_dot(dpi) - 1e-6)
	free_dots = item.w_dots - 2 * item.quiet_zone_dots - symbol_dots
	return (item.quiet_zone_dots + max(0, free_dots // 2), free_dots >= 0)


#============================================
def draw_barcode_element(
	pdf: reportlab.pdfgen.canvas.Canvas,
	item: ResolvedElement,
	label: ResolvedLabel,
) -> list[LayoutWarning]:
	"""
	Draw a barcode element, centered between its quiet zones.

	Args:
		pdf: ReportLab canvas.
		item: Resolved barcode element.
		label: Resolved label.

	Returns:
		Render warnings.
	"""
	if not is_printable_barcode(item):
		return [
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_SKIPPED",
				message=f"Barcode value {item.value!r} cannot be encoded as {item.symbology}",
				element_id=item.element.id,
			)
		]
	dpi = label.dpi
	drawing = build_barcode_drawing(item, dpi)
	offset_dots, fits = barcode_offset_dots(item, drawing.width, dpi)
	warnings: list[LayoutWarning] = []
	if not fits:
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="BARCODE_OVERFLOWS_BOX",
				message="Barcode symbol plus quiet zones is wider than its box",
				element_id=item.element.id,
			)
		)
	x, y, _, _ = dots_to_pdf_rect(
		item.x_dots + offset_dots, item.y_dots, item.w_dots, item.h_dots, label.height_dots, dpi
	)
	reportlab.graphics.renderPDF.draw(drawing, pdf, x, y)
	return warnings


#============================================
def load_image_reader(
	source: str,
	image_cache: dict[str, reportlab.lib.utils.ImageReader],
) -> reportlab.lib.utils.ImageReader | None:
	"""
	Load an image once per render batch.

	Args:
		source: Image file path.
		image_cache: Cache of ImageReader instances keyed by path.

	Returns:
		ImageReader, or None when the file does not exist.
	"""
	if source in image_cache:
		return image_cache[source]
	path = pathlib.Path(source)
	if not source or not path.is_file():
		return None
	image = PIL.Image.open(path)
	image.load()
	if image.mode not in ("RGB", "RGBA", "L"):
		image = image.convert("RGBA")
	image_reader = reportlab.lib.utils.ImageReader(image)
	image_cache[source] = image_reader
	return image_reader


#============================================
def draw_image_element(
	pdf: reportlab.pdfgen.canvas.Canvas,
	item: ResolvedElement,
	label: ResolvedLabel,
	image_cache: dict[str, reportlab.lib.utils.ImageReader],
) -> list[LayoutWarning]:
	"""
	Draw an image element stretched to its dot box.

	Args:
		pdf: ReportLab canvas.
		item: Resolved image element (value is the image path).
		label: Resolved label.
		image_cache: Image cache.

	Returns:
		Render warnings.
	"""
	image_reader = load_image_reader(item.value, image_cache)
	if image_reader is None:
		return [
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="IMAGE_SKIPPED",
				message=f"Image not found: {item.value!r}",
				element_id=item.element.id,
			)
		]
	x, y, width, height = dots_to_pdf_rect(
		item.x_dots, item.y_dots, item.w_dots, item.h_dots, label.height_dots, label.dpi
	)
	pdf.drawImage(
		image_reader,
		x,
		y,
		width=width,
		height=height,
		mask="auto",
		preserveAspectRatio=False,
		anchor="sw",
	)
	return []


#============================================
def draw_element_outline(
	pdf: reportlab.pdfgen.canvas.Canvas,
	item: ResolvedElement,
	label: ResolvedLabel,
) -> None:
	x, y, width, height = dots_to_pdf_rect(
		item.x_dots, item.y_dots, item.w_dots, item.h_dots, label.height_dots, label.dpi
	)
	pdf.setLineWidth(OUTLINE_WIDTH_PT)
	pdf.setStrokeColorRGB(0.7, 0.7, 0.7)
	pdf.rect(x, y, width, height, stroke=1, fill=0)


#============================================
def draw_label(
	pdf: reportlab.pdfgen.canvas.Canvas,
	label: ResolvedLabel,
	config: RenderConfig,
	image_cache: dict[str, reportlab.lib.utils.ImageReader],
) -> list[LayoutWarning]:
	"""
	Draw every resolved element onto the current page.

	Args:
		pdf: ReportLab canvas.
		label: Resolved label.
		config: Render configuration.
		image_cache: Image cache.

	Returns:
		Render warnings.
	"""
	warnings: list[LayoutWarning] = []
	background = label.profile.background
	if background and background.upper() != DEFAULT_BACKGROUND:
		set_fill(pdf, background)
		fill_dot_rect(pdf, 0, 0, label.width_dots, label.height_dots, label.height_dots, label.dpi)

	for item in label.elements:
		element_type = item.element.type
		if element_type == "box":
			draw_box_element(pdf, item, label)
		elif element_type == "text":
			draw_text_element(pdf, item, label)
		elif element_type == "barcode":
			warnings.extend(draw_barcode_element(pdf, item, label))
		elif element_type == "image":
			warnings.extend(draw_image_element(pdf, item, label, image_cache))
		if config.draw_outlines or config.diagnostic:
			draw_element_outline(pdf, item, label)
	return warnings


#============================================
def render_label_bytes(
	label: ResolvedLabel,
	config: RenderConfig,
	image_cache: dict[str, reportlab.lib.utils.ImageReader],
) -> tuple[bytes, list[LayoutWarning]]:
	"""
	Render one label to an in-memory single page PDF.

	Args:
		label: Resolved label.
		config: Render configuration.
		image_cache: Image cache.

	Returns:
		Tuple of (PDF bytes, render warnings).
	"""
	step = lpe.units.pt_per_dot(label.dpi)
	buffer = io.BytesIO()
	pdf = reportlab.pdfgen.canvas.Canvas(
		buffer,
		pagesize=(label.width_dots * step, label.height_dots * step),
	)
	if label.name:
		pdf.setTitle(label.name)
	warnings = draw_label(pdf, label, config, image_cache)
	pdf.showPage()
	pdf.save()
	return (buffer.getvalue(), warnings)


#============================================
def build_result(labels: list[ResolvedLabel], render_warnings: list[LayoutWarning]) -> RenderResult:
	warnings: list[LayoutWarning] = []
	for label in labels:
		warnings.extend(label.warnings)
	warnings.extend(render_warnings)
	skipped = sum(1 for warning in render_warnings if warning.code.endswith("_SKIPPED"))
	return RenderResult(
		labels_rendered=len(labels),
		pages=len(labels),
		warning_count=len(warnings),
		skipped_elements=skipped,
		warnings=warnings,
	)


#============================================
def render_label_pdf(
	label: ResolvedLabel,
	output_path: pathlib.Path,
	config: RenderConfig | None = None,
) -> RenderResult:
	"""
	Render one resolved label to a PDF file.

	Args:
		label: Resolved label.
		output_path: Output PDF path.
		config: Render configuration.

	Returns:
		RenderResult.
	"""
	if config is None:
		config = RenderConfig()
	register_fonts(config.font_files)
	data, warnings = render_label_bytes(label, config, {})
	pathlib.Path(output_path).write_bytes(data)
	return build_result([label], warnings)


#============================================
def render_batch(
	labels: list[ResolvedLabel],
	output_path: pathlib.Path,
	config: RenderConfig | None = None,
) -> RenderResult:
	"""
	Render many labels into one PDF, one page per label.

	Each label is rendered on its own page size and the pages are
	combined with pypdf, so labels from different profiles can share a
	print job.

	Args:
		labels: Resolved labels.
		output_path: Output PDF path.
		config: Render configuration.

	Returns:
		RenderResult.
	"""
	if config is None:
		config = RenderConfig()
	register_fonts(config.font_files)
	writer = pypdf.PdfWriter()
	image_cache: dict[str, reportlab.lib.utils.ImageReader] = {}
	render_warnings: list[LayoutWarning] = []
	total = len(labels)
	for index, label in enumerate(labels, start=1):
		data, warnings = render_label_bytes(label, config, image_cache)
		render_warnings.extend(warnings)
		reader = pypdf.PdfReader(io.BytesIO(data))
		for page in reader.pages:
			writer.add_page(page)
		if config.verbose and (index % PROGRESS_UPDATE_EVERY == 0 or index == total):
			print_progress("Rendering", index, total)
	if config.verbose and total:
		print()
	writer.write(str(output_path))
	return build_result(labels, render_warnings)


#============================================
def draw_target(
	pdf: reportlab.pdfgen.canvas.Canvas,
	center_x: int,
	center_y: int,
	arm_dots: int,
	line_dots: int,
	page_height_dots: int,
	dpi: float,
) -> None:
	half = line_dots // 2
	fill_dot_rect(pdf, center_x - arm_dots, center_y - half, 2 * arm_dots + line_dots, line_dots, page_height_dots, dpi)
	fill_dot_rect(pdf, center_x - half, center_y - arm_dots, line_dots, 2 * arm_dots + line_dots, page_height_dots, dpi)


#============================================
def draw_calibration_card(
	pdf: reportlab.pdfgen.canvas.Canvas,
	profile: PrinterProfile,
	horizontal_mm: float,
	vertical_mm: float,
) -> None:
	"""
	Draw the calibration card for one label stock.

	The top-left corner target is the origin of both rulers; operators
	measure each ruler end to end, and the distance from the label edge
	to that target minus the 2 mm inset gives the corner offset. A light
	5 mm grid covers the card for spotting skew.

	Args:
		pdf: ReportLab canvas sized to the label.
		profile: Printer profile.
		horizontal_mm: Horizontal ruler length.
		vertical_mm: Vertical ruler length.
	"""
	dpi = profile.dpi
	width_dots, height_dots = lpe.resolve.resolve_label_size(profile)
	inset = lpe.units.mm_to_dots(CALIBRATION_RULER_INSET_MM, dpi)
	ruler_w = lpe.units.mm_to_dots(horizontal_mm, dpi)
	ruler_h = lpe.units.mm_to_dots(vertical_mm, dpi)
	if inset + ruler_w > width_dots:
		raise lpe.calibration.CalibrationError(
			"expected_horizontal_mm",
			f"{horizontal_mm:g}mm ruler does not fit a {profile.width_mm:g}mm wide label",
		)
	if inset + ruler_h > height_dots:
		raise lpe.calibration.CalibrationError(
			"expected_vertical_mm",
			f"{vertical_mm:g}mm ruler does not fit a {profile.height_mm:g}mm tall label",
		)
	tick = lpe.units.mm_to_dots(CALIBRATION_TICK_MM, dpi)
	arm = lpe.units.mm_to_dots(CALIBRATION_TARGET_MM, dpi) // 2
	line = max(1, lpe.units.mm_to_dots(0.15, dpi))

	pdf.setFillColorRGB(0.8, 0.8, 0.8)
	step_mm = CALIBRATION_GRID_STEP_MM
	for index in range(1, int(profile.width_mm // step_mm) + 1):
		x_dots = lpe.units.mm_to_dots(index * step_mm, dpi)
		fill_dot_rect(pdf, x_dots, 0, 1, height_dots, height_dots, dpi)
	for index in range(1, int(profile.height_mm // step_mm) + 1):
		y_dots = lpe.units.mm_to_dots(index * step_mm, dpi)
		fill_dot_rect(pdf, 0, y_dots, width_dots, 1, height_dots, dpi)

	pdf.setFillColorRGB(0.0, 0.0, 0.0)
	# rulers run from the origin target; the end tick closes the measured length
	fill_dot_rect(pdf, inset, inset, ruler_w, line, height_dots, dpi)
	fill_dot_rect(pdf, inset, inset, line, ruler_h, height_dots, dpi)
	for index in range(1, int(horizontal_mm // step_mm) + 1):
		x_dots = inset + lpe.units.mm_to_dots(index * step_mm, dpi)
		fill_dot_rect(pdf, x_dots - line, inset, line, tick, height_dots, dpi)
	for index in range(1, int(vertical_mm // step_mm) + 1):
		y_dots = inset + lpe.units.mm_to_dots(index * step_mm, dpi)
		fill_dot_rect(pdf, inset, y_dots - line, tick, line, height_dots, dpi)
	fill_dot_rect(pdf, inset + ruler_w - line, inset, line, 2 * tick, height_dots, dpi)
	fill_dot_rect(pdf, inset, inset + ruler_h - line, 2 * tick, line, height_dots, dpi)

	corners = (
		(inset, inset),
		(width_dots - inset, inset),
		(inset, height_dots - inset),
		(width_dots - inset, height_dots - inset),
	)
	for center_x, center_y in corners:
		draw_target(pdf, center_x, center_y, arm, line, height_dots, dpi)

	caption = f"H {horizontal_mm:g}mm  V {vertical_mm:g}mm  {dpi:g}dpi"
	font_size = lpe.grid.snap_font_size_pt(5.0, dpi)
	caption_x, caption_y, _, _ = dots_to_pdf_rect(inset + 2 * tick, inset + 2 * tick, 0, 0, height_dots, dpi)
	pdf.setFont(DEFAULT_FONT_REGULAR, font_size)
	pdf.drawString(caption_x, caption_y - font_size, caption)


#============================================
def render_calibration_card(
	profile: PrinterProfile,
	output_path: pathlib.Path,
	horizontal_mm: float | None = None,
	vertical_mm: float | None = None,
) -> pathlib.Path:
	"""
	Write the calibration card PDF for a printer profile.

	Args:
		profile: Printer profile.
		output_path: Output PDF path.
		horizontal_mm: Horizontal ruler length, fitted to the label by default.
		vertical_mm: Vertical ruler length, fitted to the label by default.

	Returns:
		Output path.
	"""
	fitted_horizontal, fitted_vertical = lpe.calibration.ruler_lengths_for_profile(profile)
	if horizontal_mm is None:
		horizontal_mm = fitted_horizontal
	if vertical_mm is None:
		vertical_mm = fitted_vertical
	width_dots, height_dots = lpe.resolve.resolve_label_size(profile)
	step = lpe.units.pt_per_dot(profile.dpi)
	output_path = pathlib.Path(output_path)
	pdf = reportlab.pdfgen.canvas.Canvas(str(output_path), pagesize=(width_dots * step, height_dots * step))
	pdf.setTitle(f"Calibration {profile.profile_id or profile.name}".strip())
	draw_calibration_card(pdf, profile, horizontal_mm, vertical_mm)
	pdf.showPage()
	pdf.save()
	return output_path


#============================================
def css_mm(dots: int, dpi: float) -> str:
	return f"{lpe.units.dots_to_mm(dots, dpi):.{HTML_NUMBER_PRECISION}f}mm"


#============================================
def precision_css(label: ResolvedLabel, font_files: dict[str, str] | None = None) -> str:
	"""
	Build the print CSS for a label document.

	Args:
		label: Resolved label.
		font_files: Font paths keyed by family, embedded with @font-face.

	Returns:
		CSS text.
	"""
	width = css_mm(label.width_dots, label.dpi)
	height = css_mm(label.height_dots, label.dpi)
	background = label.profile.background or DEFAULT_BACKGROUND
	rules: list[str] = []
	for family, path in sorted((font_files or {}).items()):
		uri = pathlib.Path(path).resolve().as_uri()
		rules.append(f"@font-face {{ font-family: '{family}'; src: url('{uri}'); }}")
	rules.extend(
		[
			f"@page {{ size: {width} {height}; margin: 0; }}",
			"html, body { margin: 0; padding: 0; }",
			"* { -webkit-print-color-adjust: exact; print-color-adjust: exact; }",
			f".label {{ position: relative; width: {width}; height: {height}; overflow: hidden; background: {background}; }}",
			".el { position: absolute; box-sizing: border-box; overflow: hidden; }",
			".text { white-space: pre-wrap; overflow-wrap: normal; }",
			".barcode svg { display: block; }",
			".image img { display: block; width: 100%; height: 100%; object-fit: fill; }",
		]
	)
	return "\n".join(rules)


#============================================
def barcode_svg(item: ResolvedElement, dpi: float) -> str:
	"""
	Render a barcode symbol as inline SVG markup.

	Args:
		item: Resolved barcode element.
		dpi: Printer resolution.

	Returns:
		SVG element text, empty when the value cannot be encoded.
	"""
	if not is_printable_barcode(item):
		return ""
	drawing = build_barcode_drawing(item, dpi)
	svg = reportlab.graphics.renderSVG.drawToString(drawing)
	start = svg.find("<svg")
	return svg[start:] if start >= 0 else svg


#============================================
def element_html(item: ResolvedElement, label: ResolvedLabel) -> str:
	"""
	Markup for one resolved element.

	Args:
		item: Resolved element.
		label: Resolved label.

	Returns:
		HTML fragment.
	"""
	dpi = label.dpi
	element = item.element
	geometry = (
		f"left: {css_mm(item.x_dots, dpi)}; top: {css_mm(item.y_dots, dpi)}; "
		f"width: {css_mm(item.w_dots, dpi)}; height: {css_mm(item.h_dots, dpi)};"
	)
	element_id = html.escape(element.id, quote=True)

	if element.type == "text":
		style = element.style or TextStyle()
		overflow = element.overflow or OverflowPolicy()
		font_size = item.fit.font_size_pt if item.fit is not None else style.font_size_pt
		line_height = lpe.grid.snap_line_height(font_size, style.line_height, dpi)
		css = (
			f"{geometry} font-family: '{style.font_family}'; font-size: {font_size:.4f}pt; "
			f"font-weight: {style.font_weight}; font-style: {'italic' if style.italic else 'normal'}; "
			f"text-align: {style.align}; line-height: {line_height:.4f}; color: {style.color};"
		)
		if overflow.mode == "shrink_to_fit":
			attrs = f' data-minpt="{overflow.min_font_size_pt:g}" data-maxpt="{style.font_size_pt:g}"'
			if overflow.max_lines is not None:
				attrs += f' data-maxlines="{overflow.max_lines}"'
			return (
				f'<div id="{element_id}" class="el text autofit" style="{css}"{attrs}>'
				f"{html.escape(item.value)}</div>"
			)
		lines = item.fit.lines if item.fit is not None else ()
		return f'<div id="{element_id}" class="el text" style="{css}">{html.escape(chr(10).join(lines))}</div>'

	if element.type == "barcode":
		padding = ""
		svg = barcode_svg(item, dpi)
		if svg:
			drawing_width = build_barcode_drawing(item, dpi).width
			offset_dots, _ = barcode_offset_dots(item, drawing_width, dpi)
			padding = f" padding-left: {css_mm(offset_dots, dpi)};"
		return f'<div id="{element_id}" class="el barcode" style="{geometry}{padding}">{svg}</div>'

	if element.type == "image":
		source = pathlib.Path(item.value).resolve().as_uri() if item.value else ""
		return (
			f'<div id="{element_id}" class="el image" style="{geometry}">'
			f'<img src="{html.escape(source, quote=True)}" alt=""></div>'
		)

	css = geometry
	if element.fill_color:
		css += f" background: {element.fill_color};"
	if element.stroke_width_mm > 0:
		stroke = max(1, lpe.units.mm_to_dots(element.stroke_width_mm, dpi))
		css += f" border: {css_mm(stroke, dpi)} solid {element.stroke_color};"
	return f'<div id="{element_id}" class="el box" style="{css}"></div>'


#============================================
def html_font_warnings(label: ResolvedLabel, font_files: dict[str, str] | None = None) -> list[LayoutWarning]:
	"""
	Flag text elements whose font would be substituted by the browser.

	Python measures with ReportLab metrics; an HTML artifact only matches
	those metrics when the same font file is embedded with @font-face.

	Args:
		label: Resolved label.
		font_files: Font paths keyed by family.

	Returns:
		One FONT_NOT_EMBEDDED warning per affected text element.
	"""
	embedded = set(font_files or {})
	warnings: list[LayoutWarning] = []
	for item in label.elements:
		if item.element.type != "text":
			continue
		family = (item.element.style or TextStyle()).font_family
		if family in embedded:
			continue
		warnings.append(
			LayoutWarning(
				severity=SEVERITY_WARNING,
				code="FONT_NOT_EMBEDDED",
				message=f"Font {family!r} has no embedded file; the browser will substitute a system font",
				element_id=item.element.id,
			)
		)
	return warnings


#============================================
def render_label_html(label: ResolvedLabel, config: RenderConfig | None = None) -> str:
	"""
	Render a resolved label as a standalone HTML document.

	The autofit routine is embedded so a headless print browser and an
	interactive preview both run the same fitting pass.

	Args:
		label: Resolved label.
		config: Render configuration.

	Returns:
		HTML text.
	"""
	if config is None:
		config = RenderConfig()
	body = "\n".join(element_html(item, label) for item in label.elements)
	parts = [
		"<!DOCTYPE html>",
		"<html>",
		"<head>",
		'<meta charset="utf-8">',
		f"<title>{html.escape(label.name or 'label')}</title>",
		f"<style>\n{precision_css(label, config.font_files)}\n</style>",
		"</head>",
		"<body>",
		f'<div class="label">\n{body}\n</div>',
	]
	if config.embed_autofit_script:
		parts.append(f"<script>\n{lpe.autofit.build_autofit_script(label.dpi)}\n</script>")
	parts.extend(["</body>", "</html>"])
	return "\n".join(parts) + "\n"


#============================================
def write_label_html(
	label: ResolvedLabel,
	output_path: pathlib.Path,
	config: RenderConfig | None = None,
) -> pathlib.Path:
	output_path = pathlib.Path(output_path)
	output_path.write_text(render_label_html(label, config), encoding="utf-8")
	return output_path


#============================================
def write_manifest(
	manifest_path: pathlib.Path,
	labels: list[ResolvedLabel],
	result: RenderResult,
) -> None:
	"""
	Write a manifest JSON file with the printed geometry.

	Args:
		manifest_path: Output path.
		labels: Rendered labels.
		result: Render result.
	"""
	data = {
		"labels_rendered": result.labels_rendered,
		"pages": result.pages,
		"warning_count": result.warning_count,
		"skipped_elements": result.skipped_elements,
		"warnings": [
			{
				"severity": warning.severity,
				"code": warning.code,
				"element_id": warning.element_id,
				"message": warning.message,
			}
			for warning in result.warnings
		],
		"labels": [
			{
				"name": label.name,
				"profile_id": label.profile.profile_id,
				"dpi": label.dpi,
				"width_dots": label.width_dots,
				"height_dots": label.height_dots,
				"calibration": None
				if label.override is None
				else {
					"station_id": label.override.station_id,
					"scale_x": label.override.scale_x,
					"scale_y": label.override.scale_y,
					"offset_x_mm": label.override.offset_x_mm,
					"offset_y_mm": label.override.offset_y_mm,
				},
				"elements": lpe.resolve.geometry_table(label),
			}
			for label in labels
		],
	}
	with pathlib.Path(manifest_path).open("w", encoding="utf-8") as handle:
		json.dump(data, handle, indent=2, sort_keys=True)
