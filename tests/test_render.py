import json
import pathlib

import fitz
import PIL.Image
import pypdf
import pytest

import label_precision_engine as lpe
import label_precision_engine.calibration
import label_precision_engine.config
import label_precision_engine.render
import label_precision_engine.resolve
import label_precision_engine.template
import label_precision_engine.units


DPI = 300
INK_THRESHOLD = 128
PAPER_THRESHOLD = 230


#============================================
def _render_pdf_page(path: pathlib.Path, index: int = 0) -> PIL.Image.Image:
	"""
	Rasterize one PDF page at the printer resolution.

	Args:
		path: PDF path.
		index: Page index.

	Returns:
		Grayscale PIL image, one pixel per printer dot.
	"""
	document = fitz.open(path)
	page = document[index]
	scale = DPI / 72.0
	pixmap = page.get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
	image = PIL.Image.frombytes("RGB", [pixmap.width, pixmap.height], pixmap.samples)
	document.close()
	return image.convert("L")


#============================================
def _layout_with_elements(sample_layout_data: dict, elements: list[dict]) -> lpe.template.TemplateLayout:
	data = dict(sample_layout_data, elements=elements)
	return lpe.template.parse_layout(data)


#============================================
def _box(x: int, y: int, w: int, h: int, **extra) -> dict:
	dots = lpe.units.dots_to_mm
	item = {
		"id": "box",
		"type": "box",
		"x_mm": dots(x),
		"y_mm": dots(y),
		"w_mm": dots(w),
		"h_mm": dots(h),
		"fill_color": "#000000",
	}
	item.update(extra)
	return item


#============================================
def test_page_size_is_whole_dots(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	label = lpe.resolve.resolve_layout(layout, sample_record)
	output = tmp_path / "label.pdf"
	result = lpe.render.render_label_pdf(label, output)
	assert result.labels_rendered == 1
	assert result.skipped_elements == 0
	page = pypdf.PdfReader(str(output)).pages[0]
	assert float(page.mediabox.width) == pytest.approx(343 * 0.24)
	assert float(page.mediabox.height) == pytest.approx(1063 * 0.24)


#============================================
def test_box_edges_land_on_dot_boundaries(tmp_path: pathlib.Path, sample_layout_data: dict) -> None:
	"""
	A filled box covers exactly its dot rectangle when rasterized at the printer DPI.
	"""
	layout = _layout_with_elements(sample_layout_data, [_box(24, 48, 100, 60)])
	label = lpe.resolve.resolve_layout(layout, {})
	output = tmp_path / "box.pdf"
	lpe.render.render_label_pdf(label, output)
	image = _render_pdf_page(output)
	assert image.size == (343, 1063)
	# corners inside the box
	assert image.getpixel((24, 48)) < INK_THRESHOLD
	assert image.getpixel((123, 107)) < INK_THRESHOLD
	# first dot outside each edge
	assert image.getpixel((23, 60)) > PAPER_THRESHOLD
	assert image.getpixel((124, 60)) > PAPER_THRESHOLD
	assert image.getpixel((60, 47)) > PAPER_THRESHOLD
	assert image.getpixel((60, 108)) > PAPER_THRESHOLD


#============================================
def test_box_border_is_whole_dot_strips(tmp_path: pathlib.Path, sample_layout_data: dict) -> None:
	border = _box(24, 48, 100, 60, fill_color="", stroke_width_mm=lpe.units.dots_to_mm(4))
	layout = _layout_with_elements(sample_layout_data, [border])
	label = lpe.resolve.resolve_layout(layout, {})
	output = tmp_path / "border.pdf"
	lpe.render.render_label_pdf(label, output)
	image = _render_pdf_page(output)
	assert image.getpixel((27, 70)) < INK_THRESHOLD
	assert image.getpixel((28, 70)) > PAPER_THRESHOLD
	assert image.getpixel((60, 51)) < INK_THRESHOLD
	assert image.getpixel((60, 52)) > PAPER_THRESHOLD


#============================================
def test_pdf_rect_flips_to_bottom_left_origin() -> None:
	rect = lpe.render.dots_to_pdf_rect(24, 48, 100, 60, 1063, DPI)
	assert rect == pytest.approx((24 * 0.24, (1063 - 48 - 60) * 0.24, 100 * 0.24, 60 * 0.24))


#============================================
def test_barcode_is_drawn_inside_quiet_zones(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	label = lpe.resolve.resolve_layout(layout, sample_record)
	output = tmp_path / "barcode.pdf"
	result = lpe.render.render_label_pdf(label, output)
	assert result.warnings == []
	image = _render_pdf_page(output)
	# barcode box is x 12..330, y 300..449 with a 12 dot quiet zone
	band = image.crop((12, 320, 331, 321))
	values = list(band.getdata())
	assert min(values) < INK_THRESHOLD
	assert all(value > PAPER_THRESHOLD for value in values[:12])
	assert all(value > PAPER_THRESHOLD for value in values[-12:])


#============================================
def test_unencodable_barcode_is_skipped(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict) -> None:
	sample_layout_data["elements"][2]["barcode"]["symbology"] = "ean13"
	layout = lpe.template.parse_layout(sample_layout_data)
	label = lpe.resolve.resolve_layout(layout, dict(sample_record, barcode="ABC"), include_checks=False)
	result = lpe.render.render_label_pdf(label, tmp_path / "skip.pdf")
	assert result.skipped_elements == 1
	codes = [warning.code for warning in result.warnings]
	assert codes == ["BARCODE_DATA", "BARCODE_SKIPPED"]


#============================================
def test_payload_drops_check_digit() -> None:
	assert lpe.render.barcode_payload("4006381333931", "ean13") == "400638133393"
	assert lpe.render.barcode_payload("036000291452", "upca") == "03600029145"
	assert lpe.render.barcode_payload("ABC-1", "code128") == "ABC-1"


#============================================
def test_image_element(tmp_path: pathlib.Path, sample_layout_data: dict) -> None:
	logo = tmp_path / "logo.png"
	PIL.Image.new("L", (40, 20), 0).save(logo)
	image_item = _box(24, 48, 100, 60, type="image", bind="logo", fill_color="")
	layout = _layout_with_elements(sample_layout_data, [image_item])

	label = lpe.resolve.resolve_layout(layout, {"logo": str(logo)})
	output = tmp_path / "image.pdf"
	result = lpe.render.render_label_pdf(label, output)
	assert result.warnings == []
	assert _render_pdf_page(output).getpixel((70, 80)) < INK_THRESHOLD

	missing = lpe.resolve.resolve_layout(layout, {"logo": str(tmp_path / "nope.png")})
	result = lpe.render.render_label_pdf(missing, tmp_path / "missing.pdf")
	assert [warning.code for warning in result.warnings] == ["IMAGE_SKIPPED"]
	assert result.skipped_elements == 1


#============================================
def test_batch_has_one_page_per_label(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	records = [sample_record, dict(sample_record, name="Kale"), dict(sample_record, name="Leeks")]
	labels = [lpe.resolve.resolve_layout(layout, record) for record in records]
	output = tmp_path / "batch.pdf"
	result = lpe.render.render_batch(labels, output)
	assert result.pages == 3
	reader = pypdf.PdfReader(str(output))
	assert len(reader.pages) == 3
	assert "Kale" in reader.pages[1].extract_text()


#============================================
def test_outlines_are_drawn_on_request(tmp_path: pathlib.Path, sample_layout_data: dict) -> None:
	empty_box = _box(24, 48, 100, 60, fill_color="")
	layout = _layout_with_elements(sample_layout_data, [empty_box])
	label = lpe.resolve.resolve_layout(layout, {})
	plain = tmp_path / "plain.pdf"
	outlined = tmp_path / "outlined.pdf"
	lpe.render.render_label_pdf(label, plain)
	lpe.render.render_label_pdf(label, outlined, lpe.config.RenderConfig(draw_outlines=True))
	assert _render_pdf_page(plain).getpixel((24, 80)) > PAPER_THRESHOLD
	assert _render_pdf_page(outlined).getpixel((24, 80)) < 250


#============================================
def test_calibration_card_rulers(tmp_path: pathlib.Path) -> None:
	profile = lpe.template.PrinterProfile(width_mm=29.0, height_mm=90.0, profile_id="dk-1201")
	output = lpe.render.render_calibration_card(profile, tmp_path / "card.pdf")
	image = _render_pdf_page(output)
	assert image.size == (343, 1063)
	# horizontal ruler starts at the 2mm inset (24 dots) and is 2 dots thick
	assert image.getpixel((124, 24)) < INK_THRESHOLD
	assert image.getpixel((124, 25)) < INK_THRESHOLD
	assert image.getpixel((124, 20)) > PAPER_THRESHOLD
	# 25mm ruler ends at dot 24 + 295
	assert image.getpixel((318, 30)) < INK_THRESHOLD
	# vertical ruler, 20mm long
	assert image.getpixel((24, 200)) < INK_THRESHOLD


#============================================
def test_calibration_card_rejects_oversized_ruler(tmp_path: pathlib.Path) -> None:
	profile = lpe.template.PrinterProfile(width_mm=29.0, height_mm=90.0, profile_id="dk-1201")
	with pytest.raises(lpe.calibration.CalibrationError) as excinfo:
		lpe.render.render_calibration_card(profile, tmp_path / "card.pdf", horizontal_mm=50.0)
	assert excinfo.value.field == "expected_horizontal_mm"


#============================================
def test_html_document(sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	label = lpe.resolve.resolve_layout(layout, sample_record)
	document = lpe.render.render_label_html(label)
	assert "@page { size: 29.0407mm 90.0007mm; margin: 0; }" in document
	assert 'class="el text autofit"' in document
	assert 'data-minpt="6" data-maxpt="12" data-maxlines="2"' in document
	assert "Organic Honeycrisp Apples" in document
	assert "<svg" in document
	assert "var ITERATIONS = 7;" in document

	bare = lpe.render.render_label_html(label, lpe.config.RenderConfig(embed_autofit_script=False))
	assert "<script>" not in bare


#============================================
def test_html_flags_fonts_without_embedded_files(sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	label = lpe.resolve.resolve_layout(layout, sample_record)
	warnings = lpe.render.html_font_warnings(label)
	assert [(warning.code, warning.element_id) for warning in warnings] == [
		("FONT_NOT_EMBEDDED", "name"),
		("FONT_NOT_EMBEDDED", "price"),
	]
	assert all(warning.severity == "WARNING" for warning in warnings)
	assert lpe.render.html_font_warnings(label, {"Helvetica": "/fonts/Helvetica.ttf"}) == []


#============================================
def test_manifest(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	override = lpe.calibration.CalibrationOverride("S1", "dk-1201", scale_x=1.01)
	label = lpe.resolve.resolve_layout(layout, sample_record, override)
	result = lpe.render.render_label_pdf(label, tmp_path / "label.pdf")
	manifest = tmp_path / "label.json"
	lpe.render.write_manifest(manifest, [label], result)
	data = json.loads(manifest.read_text(encoding="utf-8"))
	assert data["labels_rendered"] == 1
	assert data["labels"][0]["calibration"]["station_id"] == "S1"
	assert data["labels"][0]["width_dots"] == 343
	assert [row["id"] for row in data["labels"][0]["elements"]] == ["name", "price", "barcode"]


#============================================
def test_hex_colors() -> None:
	assert lpe.render.parse_hex_color("#FFF") == (1.0, 1.0, 1.0)
	assert lpe.render.parse_hex_color("#000000") == (0.0, 0.0, 0.0)
	assert lpe.render.parse_hex_color("red") == (0.0, 0.0, 0.0)
