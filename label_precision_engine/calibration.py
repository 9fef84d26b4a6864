"""
Per-station printer calibration.

Operators print a calibration card, measure its rulers and corner
offset, and the measurements become a scale + offset override keyed by
(station_id, profile_id). Values are clamped when an override is
written, so anything read back from a store is safe to render with.
"""

# Standard Library
import dataclasses
import datetime
import json
import math
import os
import pathlib
import tempfile

# local repo modules
import label_precision_engine as lpe
import label_precision_engine.config
import label_precision_engine.template


PrinterProfile = lpe.template.PrinterProfile

CALIBRATION_EXPECTED_HORIZONTAL_MM = lpe.config.CALIBRATION_EXPECTED_HORIZONTAL_MM
CALIBRATION_EXPECTED_VERTICAL_MM = lpe.config.CALIBRATION_EXPECTED_VERTICAL_MM
CALIBRATION_SCALE_MIN = lpe.config.CALIBRATION_SCALE_MIN
CALIBRATION_SCALE_MAX = lpe.config.CALIBRATION_SCALE_MAX
CALIBRATION_OFFSET_MIN_MM = lpe.config.CALIBRATION_OFFSET_MIN_MM
CALIBRATION_OFFSET_MAX_MM = lpe.config.CALIBRATION_OFFSET_MAX_MM
CALIBRATION_GRID_STEP_MM = lpe.config.CALIBRATION_GRID_STEP_MM
CALIBRATION_RULER_INSET_MM = lpe.config.CALIBRATION_RULER_INSET_MM

STEP_GENERATE = "GENERATE"
STEP_MEASURE = "MEASURE"
STEP_SAVED = "SAVED"
STEP_ABANDONED = "ABANDONED"


class CalibrationError(ValueError):
	"""
	Invalid calibration input or wizard misuse, naming the offending field.
	"""

	def __init__(self, field: str, message: str):
		super().__init__(f"{field}: {message}")
		self.field = field


@dataclasses.dataclass(frozen=True)
class CalibrationMeasurements:
	horizontal_mm: float
	vertical_mm: float
	corner_offset_x_mm: float = 0.0
	corner_offset_y_mm: float = 0.0


@dataclasses.dataclass(frozen=True)
class CalibrationOverride:
	station_id: str
	profile_id: str
	scale_x: float = 1.0
	scale_y: float = 1.0
	offset_x_mm: float = 0.0
	offset_y_mm: float = 0.0
	updated_at: str = ""

	@property
	def key(self) -> tuple[str, str]:
		return (self.station_id, self.profile_id)


#============================================
def clamp(value: float, low: float, high: float) -> float:
	return min(high, max(low, value))


#============================================
def fit_ruler_length(available_mm: float, preferred_mm: float) -> float:
	"""
	Longest ruler that fits the available space.

	Args:
		available_mm: Space left for the ruler.
		preferred_mm: Preferred ruler length.

	Returns:
		preferred_mm when it fits, otherwise the longest whole number of
		grid steps that fits (at least one step).
	"""
	if preferred_mm <= available_mm:
		return preferred_mm
	steps = max(1, math.floor(available_mm / CALIBRATION_GRID_STEP_MM))
	return steps * CALIBRATION_GRID_STEP_MM


#============================================
def ruler_lengths_for_profile(
	profile: PrinterProfile,
	preferred_horizontal_mm: float = CALIBRATION_EXPECTED_HORIZONTAL_MM,
	preferred_vertical_mm: float = CALIBRATION_EXPECTED_VERTICAL_MM,
) -> tuple[float, float]:
	"""
	Reference ruler lengths for a calibration card on this label stock.

	Args:
		profile: Printer profile.
		preferred_horizontal_mm: Preferred horizontal ruler length.
		preferred_vertical_mm: Preferred vertical ruler length.

	Returns:
		Tuple of (horizontal_mm, vertical_mm).
	"""
	inset = 2.0 * CALIBRATION_RULER_INSET_MM
	return (
		fit_ruler_length(profile.width_mm - inset, preferred_horizontal_mm),
		fit_ruler_length(profile.height_mm - inset, preferred_vertical_mm),
	)


#============================================
def utc_timestamp() -> str:
	return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="microseconds")


#============================================
def parse_measurement(value, field: str) -> float:
	"""
	Parse one operator-entered measurement.

	Out-of-range numbers are accepted (they are clamped later); only
	input that is not a finite number is rejected.

	Args:
		value: Raw input, number or string.
		field: Field name for error reporting.

	Returns:
		Measurement in millimeters.
	"""
	if isinstance(value, bool) or value is None:
		raise CalibrationError(field, f"expected a number, got {value!r}")
	if isinstance(value, str):
		value = value.strip().replace(",", ".")
	try:
		number = float(value)
	except (TypeError, ValueError):
		raise CalibrationError(field, f"expected a number, got {value!r}") from None
	if not math.isfinite(number):
		raise CalibrationError(field, f"expected a finite number, got {value!r}")
	return number


#============================================
def parse_measurements(raw: dict) -> CalibrationMeasurements:
	"""
	Parse the four wizard inputs.

	Args:
		raw: Dict with horizontal_mm, vertical_mm, corner_offset_x_mm and
			corner_offset_y_mm (the last two default to 0).

	Returns:
		CalibrationMeasurements.
	"""
	for name in ("horizontal_mm", "vertical_mm"):
		if name not in raw:
			raise CalibrationError(name, "missing")
	return CalibrationMeasurements(
		horizontal_mm=parse_measurement(raw["horizontal_mm"], "horizontal_mm"),
		vertical_mm=parse_measurement(raw["vertical_mm"], "vertical_mm"),
		corner_offset_x_mm=parse_measurement(raw.get("corner_offset_x_mm", 0.0), "corner_offset_x_mm"),
		corner_offset_y_mm=parse_measurement(raw.get("corner_offset_y_mm", 0.0), "corner_offset_y_mm"),
	)


#============================================
def clamp_override(override: CalibrationOverride) -> CalibrationOverride:
	"""
	Clamp every override field into its render-safe range.

	Args:
		override: Calibration override.

	Returns:
		Clamped override.
	"""
	return dataclasses.replace(
		override,
		scale_x=clamp(override.scale_x, CALIBRATION_SCALE_MIN, CALIBRATION_SCALE_MAX),
		scale_y=clamp(override.scale_y, CALIBRATION_SCALE_MIN, CALIBRATION_SCALE_MAX),
		offset_x_mm=clamp(override.offset_x_mm, CALIBRATION_OFFSET_MIN_MM, CALIBRATION_OFFSET_MAX_MM),
		offset_y_mm=clamp(override.offset_y_mm, CALIBRATION_OFFSET_MIN_MM, CALIBRATION_OFFSET_MAX_MM),
	)


#============================================
def compute_calibration(
	station_id: str,
	profile_id: str,
	measurements: CalibrationMeasurements,
	expected_horizontal_mm: float = CALIBRATION_EXPECTED_HORIZONTAL_MM,
	expected_vertical_mm: float = CALIBRATION_EXPECTED_VERTICAL_MM,
) -> CalibrationOverride:
	"""
	Turn calibration card measurements into a clamped override.

	Args:
		station_id: Printing station id.
		profile_id: Printer profile id.
		measurements: Measured ruler lengths and corner offsets.
		expected_horizontal_mm: Printed horizontal ruler length.
		expected_vertical_mm: Printed vertical ruler length.

	Returns:
		CalibrationOverride with every field inside its clamp range.
	"""
	if expected_horizontal_mm <= 0:
		raise CalibrationError("expected_horizontal_mm", "must be positive")
	if expected_vertical_mm <= 0:
		raise CalibrationError("expected_vertical_mm", "must be positive")
	override = CalibrationOverride(
		station_id=station_id,
		profile_id=profile_id,
		scale_x=measurements.horizontal_mm / expected_horizontal_mm,
		scale_y=measurements.vertical_mm / expected_vertical_mm,
		offset_x_mm=measurements.corner_offset_x_mm,
		offset_y_mm=measurements.corner_offset_y_mm,
	)
	return clamp_override(override)


#============================================
def apply_calibration(element, override: CalibrationOverride | None):
	"""
	Scale and offset an element's geometry.

	The result is no longer on the dot grid; callers snap it again.

	Args:
		element: Any dataclass with x_mm, y_mm, w_mm and h_mm fields.
		override: Calibration override, or None for no correction.

	Returns:
		New element with corrected geometry.
	"""
	if override is None:
		return element
	return dataclasses.replace(
		element,
		x_mm=element.x_mm * override.scale_x + override.offset_x_mm,
		y_mm=element.y_mm * override.scale_y + override.offset_y_mm,
		w_mm=element.w_mm * override.scale_x,
		h_mm=element.h_mm * override.scale_y,
	)


#============================================
def describe_override(override: CalibrationOverride) -> str:
	"""
	Describe an override for operators.

	Args:
		override: Calibration override.

	Returns:
		Summary sentence.
	"""
	return (
		f"Station {override.station_id} calibrated for {override.profile_id} with "
		f"{(override.scale_x - 1.0) * 100.0:+.2f}% X scaling, "
		f"{(override.scale_y - 1.0) * 100.0:+.2f}% Y scaling, "
		f"offset ({override.offset_x_mm:+.2f}, {override.offset_y_mm:+.2f})mm"
	)


#============================================
def override_to_dict(override: CalibrationOverride) -> dict:
	return dataclasses.asdict(override)


#============================================
def override_from_dict(data: dict) -> CalibrationOverride:
	"""
	Build an override from stored JSON.

	Args:
		data: Stored record.

	Returns:
		CalibrationOverride, exactly as stored.
	"""
	return CalibrationOverride(
		station_id=str(data["station_id"]),
		profile_id=str(data["profile_id"]),
		scale_x=float(data.get("scale_x", 1.0)),
		scale_y=float(data.get("scale_y", 1.0)),
		offset_x_mm=float(data.get("offset_x_mm", 0.0)),
		offset_y_mm=float(data.get("offset_y_mm", 0.0)),
		updated_at=str(data.get("updated_at", "")),
	)


class MemoryCalibrationStore:
	"""
	In-process override store keyed by (station_id, profile_id).
	"""

	def __init__(self):
		self._records: dict[tuple[str, str], CalibrationOverride] = {}

	def get(self, station_id: str, profile_id: str) -> CalibrationOverride | None:
		return self._records.get((station_id, profile_id))

	def list_overrides(self) -> list[CalibrationOverride]:
		return [self._records[key] for key in sorted(self._records)]

	def upsert(
		self,
		override: CalibrationOverride,
		expected_updated_at: str | None = None,
	) -> CalibrationOverride:
		"""
		Insert or replace the override for its key.

		Args:
			override: Override to store; clamped before storing.
			expected_updated_at: Optional concurrency guard. When given,
				the stored record must still carry this timestamp ("" for
				no record), otherwise CalibrationError is raised.

		Returns:
			The stored override.
		"""
		check_expected_version(self.get(*override.key), expected_updated_at)
		stored = dataclasses.replace(clamp_override(override), updated_at=utc_timestamp())
		self._records[stored.key] = stored
		return stored

	def delete(self, station_id: str, profile_id: str) -> bool:
		return self._records.pop((station_id, profile_id), None) is not None


class JsonCalibrationStore:
	"""
	Override store backed by one JSON file.

	Writes replace the file atomically, so a crashed write leaves the
	previous contents intact. Concurrent writers race and the last
	write wins unless expected_updated_at is passed to upsert().
	"""

	def __init__(self, path: pathlib.Path):
		self.path = pathlib.Path(path)

	def _load(self) -> dict[tuple[str, str], CalibrationOverride]:
		if not self.path.exists():
			return {}
		text = self.path.read_text(encoding="utf-8")
		if not text.strip():
			return {}
		data = json.loads(text)
		records: dict[tuple[str, str], CalibrationOverride] = {}
		for item in data.get("overrides", []):
			override = override_from_dict(item)
			records[override.key] = override
		return records

	def _write(self, records: dict[tuple[str, str], CalibrationOverride]) -> None:
		payload = {"overrides": [override_to_dict(records[key]) for key in sorted(records)]}
		self.path.parent.mkdir(parents=True, exist_ok=True)
		handle = tempfile.NamedTemporaryFile(
			"w",
			encoding="utf-8",
			dir=self.path.parent,
			prefix=f".{self.path.name}.",
			suffix=".tmp",
			delete=False,
		)
		try:
			with handle:
				json.dump(payload, handle, indent=2, sort_keys=True)
				handle.write("\n")
			os.replace(handle.name, self.path)
		except BaseException:
			if os.path.exists(handle.name):
				os.unlink(handle.name)
			raise

	def get(self, station_id: str, profile_id: str) -> CalibrationOverride | None:
		return self._load().get((station_id, profile_id))

	def list_overrides(self) -> list[CalibrationOverride]:
		records = self._load()
		return [records[key] for key in sorted(records)]

	def upsert(
		self,
		override: CalibrationOverride,
		expected_updated_at: str | None = None,
	) -> CalibrationOverride:
		"""
		Insert or replace the override for its key.

		Args:
			override: Override to store; clamped before storing.
			expected_updated_at: Optional concurrency guard, see
				MemoryCalibrationStore.upsert().

		Returns:
			The stored override.
		"""
		records = self._load()
		check_expected_version(records.get(override.key), expected_updated_at)
		stored = dataclasses.replace(clamp_override(override), updated_at=utc_timestamp())
		records[stored.key] = stored
		self._write(records)
		return stored

	def delete(self, station_id: str, profile_id: str) -> bool:
		records = self._load()
		if records.pop((station_id, profile_id), None) is None:
			return False
		self._write(records)
		return True


#============================================
def check_expected_version(current: CalibrationOverride | None, expected_updated_at: str | None) -> None:
	"""
	Enforce an optional optimistic concurrency guard.

	Args:
		current: Currently stored override, if any.
		expected_updated_at: Timestamp the caller last saw, "" for none,
			or None to skip the check.
	"""
	if expected_updated_at is None:
		return
	current_version = current.updated_at if current is not None else ""
	if current_version != expected_updated_at:
		raise CalibrationError(
			"updated_at",
			f"override changed since it was read (expected {expected_updated_at!r}, found {current_version!r})",
		)


class CalibrationWizard:
	"""
	Three-step calibration flow for one station and printer profile.

	GENERATE -> MEASURE -> SAVED, or ABANDONED from any unsaved step.
	Nothing is written to the store until submit() succeeds.
	"""

	def __init__(
		self,
		station_id: str,
		profile: PrinterProfile,
		store,
		card_renderer,
		expected_horizontal_mm: float | None = None,
		expected_vertical_mm: float | None = None,
	):
		if not station_id:
			raise CalibrationError("station_id", "required for calibration")
		if not profile.profile_id:
			raise CalibrationError("profile_id", "required for calibration")
		self.station_id = station_id
		self.profile = profile
		self.store = store
		self.card_renderer = card_renderer
		fitted_horizontal, fitted_vertical = ruler_lengths_for_profile(profile)
		if expected_horizontal_mm is None:
			expected_horizontal_mm = fitted_horizontal
		if expected_vertical_mm is None:
			expected_vertical_mm = fitted_vertical
		self.expected_horizontal_mm = expected_horizontal_mm
		self.expected_vertical_mm = expected_vertical_mm
		self.step = STEP_GENERATE
		self.card_path: pathlib.Path | None = None
		self.saved: CalibrationOverride | None = None

	def _require_step(self, *allowed: str) -> None:
		if self.step not in allowed:
			raise CalibrationError("step", f"not allowed in step {self.step}")

	def generate(self, output_path: pathlib.Path) -> pathlib.Path:
		"""
		Produce the calibration card and move on to measuring.

		May be repeated while measuring, e.g. after a misprint.

		Args:
			output_path: Where the card artifact is written.

		Returns:
			Path of the generated card.
		"""
		self._require_step(STEP_GENERATE, STEP_MEASURE)
		self.card_renderer(
			self.profile,
			pathlib.Path(output_path),
			self.expected_horizontal_mm,
			self.expected_vertical_mm,
		)
		self.card_path = pathlib.Path(output_path)
		self.step = STEP_MEASURE
		return self.card_path

	def preview(self, raw: dict) -> CalibrationOverride:
		"""
		Compute the override for a set of measurements without saving.

		Args:
			raw: Raw wizard inputs.

		Returns:
			Clamped override.
		"""
		self._require_step(STEP_MEASURE)
		measurements = parse_measurements(raw)
		return compute_calibration(
			self.station_id,
			self.profile.profile_id,
			measurements,
			self.expected_horizontal_mm,
			self.expected_vertical_mm,
		)

	def submit(self, raw: dict, expected_updated_at: str | None = None) -> CalibrationOverride:
		"""
		Compute and persist the override, ending the wizard.

		Args:
			raw: Raw wizard inputs.
			expected_updated_at: Optional concurrency guard for the store.

		Returns:
			Stored override.
		"""
		override = self.preview(raw)
		self.saved = self.store.upsert(override, expected_updated_at=expected_updated_at)
		self.step = STEP_SAVED
		return self.saved

	def abandon(self) -> None:
		self._require_step(STEP_GENERATE, STEP_MEASURE)
		self.step = STEP_ABANDONED
