import pytest

import label_precision_engine as lpe
import label_precision_engine.grid
import label_precision_engine.template
import label_precision_engine.units


DPI = 300
DOT_MM = 25.4 / DPI


#============================================
@pytest.mark.parametrize("dpi", [203, 300, 600])
def test_dots_round_trip(dpi: int) -> None:
	"""
	Every whole dot count survives a trip through millimeters.
	"""
	for dots in range(0, 3000):
		assert lpe.units.mm_to_dots(lpe.units.dots_to_mm(dots, dpi), dpi) == dots


#============================================
def test_mm_to_dots_is_monotonic() -> None:
	"""
	Larger lengths never map to fewer dots.
	"""
	previous = -1
	for step in range(0, 5000):
		dots = lpe.units.mm_to_dots(step * 0.013, DPI)
		assert dots >= previous
		previous = dots


#============================================
def test_dots_to_mm_within_half_dot() -> None:
	"""
	Converting to dots and back moves a length by at most half a dot.
	"""
	for step in range(0, 2000):
		mm = step * 0.0371
		restored = lpe.units.dots_to_mm(lpe.units.mm_to_dots(mm, DPI), DPI)
		assert abs(restored - mm) <= DOT_MM / 2.0 + 1e-9


#============================================
def test_point_and_dot_sizes() -> None:
	assert lpe.units.pt_per_dot(300) == pytest.approx(0.24)
	assert lpe.units.pt_per_dot(600) == pytest.approx(0.12)
	assert lpe.units.dot_mm(300) == pytest.approx(DOT_MM)
	assert lpe.units.mm_to_points(25.4) == pytest.approx(72.0)
	assert lpe.units.points_to_mm(72.0) == pytest.approx(25.4)
	assert lpe.units.mm_to_css_px(25.4) == pytest.approx(96.0)


#============================================
def test_round_half_up_matches_browser_rounding() -> None:
	"""
	Halves round up like Math.round(), not to even.
	"""
	assert lpe.units.round_half_up(0.5) == 1
	assert lpe.units.round_half_up(2.5) == 3
	assert lpe.units.round_half_up(-0.5) == 0
	assert lpe.units.round_half_up(-1.5) == -1


#============================================
def test_snap_mm_is_idempotent() -> None:
	for step in range(-200, 2000):
		mm = step * 0.0173
		once = lpe.grid.snap_mm(mm, DPI)
		assert lpe.grid.snap_mm(once, DPI) == pytest.approx(once, abs=1e-12)


#============================================
def test_snap_mm_rounds_to_nearest_dot() -> None:
	# 1.0 mm is 11.81 dots
	assert lpe.grid.snap_mm(1.0, DPI) == pytest.approx(12 * DOT_MM)
	# coarser snapping in steps of 4 dots
	assert lpe.grid.snap_mm(1.0, DPI, dots=4) == pytest.approx(12 * DOT_MM)
	assert lpe.grid.snap_mm(1.2, DPI, dots=4) == pytest.approx(16 * DOT_MM)


#============================================
def test_snap_size_never_below_one_dot() -> None:
	assert lpe.grid.snap_size_mm(0.001, DPI) == pytest.approx(DOT_MM)
	assert lpe.grid.snap_size_mm(10.0, DPI) == pytest.approx(118 * DOT_MM)


#============================================
def test_module_width_is_fixed_point_within_half_dot() -> None:
	"""
	Module widths snap once, stay put, and move less than half a dot.
	"""
	for step in range(1, 60):
		desired = step * 0.05
		module = lpe.grid.module_mm_from_desired(desired, DPI)
		assert lpe.grid.module_mm_from_desired(module, DPI) == pytest.approx(module)
		assert abs(module - desired) <= DOT_MM / 2.0 + 1e-9


#============================================
@pytest.mark.parametrize("desired", [0.001, 0.01, 0.03, 0.042])
def test_module_width_never_drops_below_one_dot(desired: float) -> None:
	"""
	Below half a dot the one-dot floor applies instead of nearest rounding.
	"""
	module = lpe.grid.module_mm_from_desired(desired, DPI)
	assert module == pytest.approx(DOT_MM)
	assert lpe.grid.module_mm_from_desired(module, DPI) == pytest.approx(module)
	assert desired < DOT_MM / 2.0


#============================================
def test_module_and_quiet_zone_values() -> None:
	# 0.33 mm is 3.9 dots at 300 DPI
	assert lpe.grid.module_mm_from_desired(0.33, DPI) == pytest.approx(4 * DOT_MM)
	assert lpe.grid.quiet_zone_mm_from_desired(2.54, DPI) == pytest.approx(2.54)
	assert lpe.grid.quiet_zone_mm_from_desired(0.01, DPI) == pytest.approx(DOT_MM)


#============================================
def test_font_size_snaps_to_dot_steps() -> None:
	assert lpe.grid.snap_font_size_pt(10.0, DPI) == pytest.approx(10.08)
	assert lpe.grid.snap_font_size_pt(12.0, DPI) == pytest.approx(12.0)
	assert lpe.grid.snap_font_size_pt(6.0, DPI) == pytest.approx(6.0)


#============================================
def test_snapped_line_height_advances_whole_dots() -> None:
	for font_size in (6.0, 7.5, 9.0, 11.0, 14.0):
		ratio = lpe.grid.snap_line_height(font_size, 1.2, DPI)
		advance_mm = ratio * lpe.units.points_to_mm(font_size)
		assert lpe.grid.is_on_grid(advance_mm, DPI)
		assert abs(ratio - 1.2) < 0.1


#============================================
def test_snap_element_puts_geometry_on_grid() -> None:
	element = lpe.template.TemplateElement(
		id="box",
		type="box",
		x_mm=1.03,
		y_mm=2.71,
		w_mm=10.04,
		h_mm=0.02,
	)
	snapped = lpe.grid.snap_element(element, DPI)
	for name in ("x_mm", "y_mm", "w_mm", "h_mm"):
		assert lpe.grid.is_on_grid(getattr(snapped, name), DPI)
	assert snapped.h_mm == pytest.approx(DOT_MM)
	assert snapped.id == "box"
