"""
Pytest configuration for local imports and shared label fixtures.
"""

# Standard Library
import os
import sys

# PIP3 modules
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()

import label_precision_engine as lpe  # noqa: E402
import label_precision_engine.units  # noqa: E402


#============================================
@pytest.fixture
def sample_layout_data() -> dict:
	"""
	A 29x90 mm DK-1201 layout at 300 DPI with every element on the dot grid.
	"""
	dots = lpe.units.dots_to_mm
	return {
		"name": "produce",
		"meta": {
			"width_mm": 29.0,
			"height_mm": 90.0,
			"dpi": 300,
			"margin_mm": 0.0,
			"bg": "#FFFFFF",
			"profile_id": "dk-1201",
		},
		"elements": [
			{
				"id": "name",
				"type": "text",
				"x_mm": dots(24),
				"y_mm": dots(24),
				"w_mm": dots(295),
				"h_mm": dots(120),
				"bind": "product.name",
				"style": {"font_size_pt": 12, "font_weight": 700, "align": "center"},
				"overflow": {"mode": "shrink_to_fit", "min_font_size_pt": 6, "max_lines": 2},
			},
			{
				"id": "price",
				"type": "text",
				"x_mm": dots(24),
				"y_mm": dots(168),
				"w_mm": dots(295),
				"h_mm": dots(96),
				"bind": "price | currency('$')",
				"style": {"font_size_pt": 14},
				"overflow": {"mode": "shrink_to_fit", "min_font_size_pt": 8, "max_lines": 1},
				"visibility": {"hide_if_empty": True},
			},
			{
				"id": "barcode",
				"type": "barcode",
				"x_mm": dots(12),
				"y_mm": dots(300),
				"w_mm": dots(319),
				"h_mm": dots(150),
				"bind": "product.barcode",
				"barcode": {
					"symbology": "code128",
					"module_width_mm": dots(2),
					"quiet_zone_mm": dots(12),
				},
			},
		],
	}


#============================================
@pytest.fixture
def sample_record() -> dict:
	return {
		"name": "Organic Honeycrisp Apples",
		"price": 3.5,
		"barcode": "012345678905",
		"unit": "lb",
		"sku": "APL-HC-01",
	}
