import json
import pathlib

import pypdf
import pytest

import label_precision_engine as lpe
import label_precision_engine.calibration
import label_precision_engine.cli
import label_precision_engine.template
import label_precision_engine.units


#============================================
def _write_json(path: pathlib.Path, data) -> pathlib.Path:
	path.write_text(json.dumps(data), encoding="utf-8")
	return path


#============================================
def test_check_clean_template(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	assert lpe.cli.main(["check", str(template), "--strict"]) == 0
	assert "Warnings: 0" in capsys.readouterr().out


#============================================
def test_check_strict_fails_on_warning(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	sample_layout_data["elements"][2]["h_mm"] = lpe.units.dots_to_mm(100)
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	assert lpe.cli.main(["check", str(template)]) == 0
	assert lpe.cli.main(["check", str(template), "--strict"]) == 1
	assert "BARCODE_TOO_SHORT" in capsys.readouterr().out


#============================================
def test_invalid_template_exits_with_error(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	sample_layout_data["elements"][0]["w_mm"] = -1
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	assert lpe.cli.main(["check", str(template)]) == 2
	assert "elements[0].w_mm" in capsys.readouterr().err


#============================================
def test_calibrate_then_render(tmp_path: pathlib.Path, sample_layout_data: dict, sample_record: dict, capsys) -> None:
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	records = _write_json(tmp_path / "records.json", [sample_record, dict(sample_record, name="Kale")])
	store_path = tmp_path / "overrides.json"

	code = lpe.cli.main(
		[
			"calibrate",
			str(template),
			"-s",
			"S1",
			"--store",
			str(store_path),
			"--horizontal",
			"25,25",
			"--vertical",
			"20",
		]
	)
	assert code == 0
	stored = lpe.calibration.JsonCalibrationStore(store_path).get("S1", "dk-1201")
	assert stored.scale_x == pytest.approx(1.01)

	output = tmp_path / "labels.pdf"
	html_path = tmp_path / "preview.html"
	code = lpe.cli.main(
		[
			"render",
			str(template),
			"-r",
			str(records),
			"-o",
			str(output),
			"--html",
			str(html_path),
			"-s",
			"S1",
			"--store",
			str(store_path),
		]
	)
	assert code == 0
	assert len(pypdf.PdfReader(str(output)).pages) == 2
	assert "autofit" in html_path.read_text(encoding="utf-8")
	assert "FONT_NOT_EMBEDDED [name]" in capsys.readouterr().out
	manifest = json.loads(pathlib.Path(f"{output}.json").read_text(encoding="utf-8"))
	assert manifest["labels"][0]["calibration"]["scale_x"] == pytest.approx(1.01)


#============================================
def test_calibration_card_command(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	output = tmp_path / "card.pdf"
	assert lpe.cli.main(["calibration-card", str(template), "-o", str(output)]) == 0
	assert output.is_file()
	assert "horizontal 25mm, vertical 20mm" in capsys.readouterr().out
	assert lpe.cli.main(["calibration-card", str(template), "-o", str(output), "--horizontal-ruler", "50"]) == 2


#============================================
def test_bad_measurement_exits_with_error(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	args = ["calibrate", str(template), "-s", "S1", "--store", str(tmp_path / "o.json"), "--horizontal", "x", "--vertical", "20"]
	assert lpe.cli.main(args) == 2
	assert "horizontal_mm" in capsys.readouterr().err
	assert not (tmp_path / "o.json").exists()


#============================================
def test_font_argument_format() -> None:
	assert lpe.cli.parse_font_args(["Inter=/fonts/Inter.ttf"]) == {"Inter": "/fonts/Inter.ttf"}
	with pytest.raises(lpe.template.TemplateError):
		lpe.cli.parse_font_args(["Inter"])


#============================================
def test_render_reports_printer_paper(tmp_path: pathlib.Path, sample_layout_data: dict, capsys) -> None:
	template = _write_json(tmp_path / "layout.json", sample_layout_data)
	output = str(tmp_path / "label.pdf")
	rotated = _write_json(tmp_path / "papers.json", {"62mm": [620, None], "90x29": [900, 290]})
	assert lpe.cli.main(["render", template.as_posix(), "-o", output, "--papers", str(rotated)]) == 0
	assert "Paper: 90x29 (rotation 90)" in capsys.readouterr().out

	none = _write_json(tmp_path / "none.json", {"62mm": [620, None]})
	assert lpe.cli.main(["render", template.as_posix(), "-o", output, "--papers", str(none)]) == 0
	assert "Paper: WARNING no printer paper matches" in capsys.readouterr().out

	bad = _write_json(tmp_path / "bad.json", {"29x90": ["wide", 900]})
	assert lpe.cli.main(["render", template.as_posix(), "-o", output, "--papers", str(bad)]) == 2
	assert "papers.29x90" in capsys.readouterr().err
