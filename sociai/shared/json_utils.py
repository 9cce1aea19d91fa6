import json
import re
from typing import Any, Callable, Optional, Type, TypeVar, Union

from pydantic import TypeAdapter, ValidationError

T = TypeVar("T")

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _strip_fences(text: str) -> str:
    text = text.strip()
    match = _FENCE_RE.match(text)
    return match.group(1) if match else text


def _load_lenient(text: str) -> Any:
    """Decode JSON, falling back to the first balanced object/array in the text."""
    cleaned = _strip_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass
    decoder = json.JSONDecoder()
    for idx, ch in enumerate(cleaned):
        if ch in "{[":
            try:
                value, _ = decoder.raw_decode(cleaned[idx:])
                return value
            except json.JSONDecodeError:
                continue
    raise ValueError("no JSON value found")


def parse_with_default(
    text: Optional[str],
    target: Union[Type[T], Any],
    default: Union[T, Callable[[], T]],
    *,
    on_error: Optional[Callable[[Exception], None]] = None,
) -> T:
    """Parse model output into ``target`` or return ``default``.

    ``target`` is anything pydantic's ``TypeAdapter`` accepts (a model class,
    ``List[Model]``...). ``default`` may be a value or a zero-arg factory.
    """
    try:
        if not text or not text.strip():
            raise ValueError("empty response")
        raw = _load_lenient(text)
        return TypeAdapter(target).validate_python(raw)
    except (ValueError, ValidationError) as exc:
        if on_error is not None:
            on_error(exc)
        return default() if callable(default) else default
