"""
Default data-binding evaluator.

Expressions look like "product.name", "price | currency('$')" or
"unit | unit_suffix". A bare word that is not a record field, with no
filters, is printed literally. Renderers accept any callable with the same
signature in place of evaluate_binding().
"""

# Standard Library
import re


FILTER_PATTERN = re.compile(r"^(?P<name>[a-z_]+)(?:\((?P<arg>.*)\))?$")
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(?P<expr>[^}]+?)\s*\}\}")
UNIT_SUFFIXES = {
	"lb": "/lb",
	"kg": "/kg",
	"ea": "/ea",
	"unit": "/ea",
	"each": "/ea",
}


#============================================
def unit_suffix(unit: str | None) -> str:
	"""
	Format a pricing unit as a suffix such as "/lb".

	Args:
		unit: Unit name.

	Returns:
		Suffix string, empty when no unit is set.
	"""
	if not unit:
		return ""
	key = str(unit).strip().lower()
	if not key:
		return ""
	return UNIT_SUFFIXES.get(key, f"/{key}")


#============================================
def format_currency(value, symbol: str = "$") -> str:
	"""
	Format a number as a currency amount with two decimals.

	Args:
		value: Numeric value or numeric string.
		symbol: Currency symbol prefix.

	Returns:
		Formatted amount, empty for missing or non-numeric values.
	"""
	if value is None or value == "":
		return ""
	try:
		amount = float(value)
	except (TypeError, ValueError):
		return ""
	return f"{symbol}{amount:.2f}"


#============================================
def _strip_quotes(value: str) -> str:
	value = value.strip()
	if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
		return value[1:-1]
	return value


#============================================
def apply_filter(value, filter_text: str, record: dict):
	"""
	Apply one pipe filter to a bound value.

	Args:
		value: Current value.
		filter_text: Filter expression, e.g. "currency('$')".
		record: Source record, for filters that read other fields.

	Returns:
		Filtered value.
	"""
	match = FILTER_PATTERN.match(filter_text.strip())
	if match is None:
		return value
	name = match.group("name")
	arg = _strip_quotes(match.group("arg") or "")
	if name == "currency":
		return format_currency(value, arg or "$")
	if name in ("uppercase", "lowercase"):
		if value in (None, ""):
			return ""
		return str(value).upper() if name == "uppercase" else str(value).lower()
	if name == "unit_suffix":
		return unit_suffix(value)
	if name == "with_unit":
		suffix = unit_suffix(record.get(arg or "unit"))
		return f"{value}{suffix}" if value not in (None, "") else ""
	if name == "default":
		return value if value not in (None, "") else arg
	return value


#============================================
def evaluate_binding(bind: str, record: dict | None) -> str:
	"""
	Resolve a binding expression against a flat record.

	Args:
		bind: Binding expression.
		record: Flat record (name, price, barcode, sku, size, unit, ...).

	Returns:
		Resolved text.
	"""
	if not bind:
		return ""
	record = record or {}
	if "{{" in bind:
		return expand_placeholders(bind, record)
	head, *filters = bind.split("|")
	field = head.strip()
	if field.startswith("product."):
		field = field[len("product."):]
	elif not filters and field not in record:
		return bind
	value = record.get(field)
	for filter_text in filters:
		value = apply_filter(value, filter_text, record)
	if value is None:
		return ""
	return str(value)


#============================================
def expand_placeholders(text: str, record: dict | None) -> str:
	"""
	Replace {{ expression }} placeholders inside a literal string.

	Args:
		text: Text with placeholders.
		record: Flat record.

	Returns:
		Expanded text.
	"""
	record = record or {}

	def replace(match: re.Match) -> str:
		expr = match.group("expr")
		field = expr.split("|")[0].strip()
		if field.startswith("product."):
			field = field[len("product."):]
		if field not in record:
			return ""
		return evaluate_binding(expr, record)

	return PLACEHOLDER_PATTERN.sub(replace, text)
