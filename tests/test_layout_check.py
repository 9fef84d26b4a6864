import copy

import label_precision_engine as lpe
import label_precision_engine.layout_check
import label_precision_engine.template
import label_precision_engine.units


DPI = 300


#============================================
def codes(warnings: list) -> list[str]:
	return [warning.code for warning in warnings]


#============================================
def layout_with(sample_layout_data: dict, index: int, **changes) -> lpe.template.TemplateLayout:
	data = copy.deepcopy(sample_layout_data)
	data["elements"][index].update(changes)
	return lpe.template.parse_layout(data)


#============================================
def test_sample_layout_is_clean(sample_layout_data: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	assert lpe.layout_check.check_layout(layout) == []


#============================================
def test_short_barcode_warns_but_layout_still_parses(sample_layout_data: dict) -> None:
	"""
	Design problems are warnings; the layout stays usable.
	"""
	layout = layout_with(sample_layout_data, 2, h_mm=lpe.units.dots_to_mm(100, DPI))
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["BARCODE_TOO_SHORT"]
	assert warnings[0].severity == "WARNING"
	assert warnings[0].element_id == "barcode"
	assert len(layout.elements) == 3


#============================================
def test_element_past_right_edge(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 0, x_mm=lpe.units.dots_to_mm(100, DPI))
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["OUTSIDE_CANVAS"]
	assert warnings[0].element_id == "name"


#============================================
def test_negative_position(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 0, x_mm=-lpe.units.dots_to_mm(12, DPI))
	assert codes(lpe.layout_check.check_layout(layout)) == ["OUTSIDE_CANVAS_NEGATIVE"]


#============================================
def test_off_grid_geometry_is_info(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 0, x_mm=2.05, w_mm=24.99)
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["OFF_DOT_GRID"]
	assert warnings[0].severity == "INFO"
	assert "x_mm" in warnings[0].message
	assert "w_mm" in warnings[0].message


#============================================
def test_tiny_element_is_too_small(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 1, h_mm=lpe.units.dots_to_mm(1, DPI))
	assert codes(lpe.layout_check.check_layout(layout)) == ["TOO_SMALL"]


#============================================
def test_duplicate_ids(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 1, id="name")
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["DUPLICATE_ID"]


#============================================
def test_inverted_font_range(sample_layout_data: dict) -> None:
	layout = layout_with(
		sample_layout_data,
		1,
		overflow={"mode": "shrink_to_fit", "min_font_size_pt": 20, "max_lines": 1},
	)
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["FONT_RANGE_INVERTED"]
	assert warnings[0].severity == "INFO"


#============================================
def test_margin_intrusion(sample_layout_data: dict) -> None:
	data = copy.deepcopy(sample_layout_data)
	data["meta"]["margin_mm"] = 1.5
	layout = lpe.template.parse_layout(data)
	warnings = lpe.layout_check.check_layout(layout)
	# name and price start 2.03mm in; the barcode starts 1.02mm in
	assert codes(warnings) == ["INSIDE_MARGIN"]
	assert warnings[0].element_id == "barcode"


#============================================
def test_non_preset_size_is_info(sample_layout_data: dict) -> None:
	data = copy.deepcopy(sample_layout_data)
	data["meta"]["width_mm"] = 40.0
	layout = lpe.template.parse_layout(data)
	warnings = lpe.layout_check.check_layout(layout)
	assert codes(warnings) == ["NO_DK_PRESET"]
	assert warnings[0].element_id is None


#============================================
def test_canvas_size_override(sample_layout_data: dict) -> None:
	layout = lpe.template.parse_layout(sample_layout_data)
	warnings = lpe.layout_check.check_layout(layout, canvas_size=(29.0, 30.0))
	assert "OUTSIDE_CANVAS" in codes(warnings)
	assert "NO_DK_PRESET" in codes(warnings)


#============================================
def test_check_does_not_mutate(sample_layout_data: dict) -> None:
	layout = layout_with(sample_layout_data, 0, x_mm=2.05)
	before = copy.deepcopy(layout)
	lpe.layout_check.check_layout(layout)
	assert layout == before


#============================================
def test_format_and_count(sample_layout_data: dict) -> None:
	data = copy.deepcopy(sample_layout_data)
	data["meta"]["width_mm"] = 40.0
	data["elements"][2]["h_mm"] = lpe.units.dots_to_mm(100, DPI)
	warnings = lpe.layout_check.check_layout(lpe.template.parse_layout(data))
	assert lpe.layout_check.count_by_severity(warnings) == {"INFO": 1, "WARNING": 1}
	line = lpe.layout_check.format_warning(warnings[1])
	assert line.startswith("WARNING BARCODE_TOO_SHORT [barcode]: ")
