"""
FieldCodec
==========

추상 Field 모델과 엔진의 스키마리스(dynamic) 필드 규칙 사이의 양방향 변환.

필드 이름은 `{name}{suffix}` 형식이며, suffix는 (type, multi_valued) 쌍으로 결정된다.
ex. Field(name="brand", type="string") → "brand_s"
    Field(name="tags", type="string", multi_valued=True) → "tags_ss"

- 모든 suffix는 '_'로 시작하고 다른 '_'를 포함하지 않으므로,
  어떤 suffix도 다른 suffix의 접미사가 되지 않는다. (디코딩이 모호하지 않음)
- 예약 필드(unique_id, id, object_type)는 suffix 없이 저장된다.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any

from pydantic import TypeAdapter, ValidationError

from catalog_server.app.domain.models import Document, Field, FieldType, JSONDict
from catalog_server.app.platform.exceptions import InvalidFieldValue, UnsupportedFieldType

logger = logging.getLogger(__name__)

# 엔진 문서의 예약 필드
KEY_FIELD = "unique_id"
ID_FIELD = "id"
TYPE_FIELD = "object_type"

# 엔진 타임스탬프 형식(UTC 고정)
ENGINE_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

FIELD_SUFFIXES: dict[tuple[str, bool], str] = {
    (FieldType.string.value, False): "_s",
    (FieldType.string.value, True): "_ss",
    (FieldType.text.value, False): "_t",
    (FieldType.text.value, True): "_txt",
    (FieldType.int.value, False): "_i",
    (FieldType.int.value, True): "_is",
    (FieldType.long.value, False): "_l",
    (FieldType.long.value, True): "_ls",
    (FieldType.float.value, False): "_f",
    (FieldType.float.value, True): "_fs",
    (FieldType.double.value, False): "_d",
    (FieldType.double.value, True): "_ds",
    (FieldType.boolean.value, False): "_b",
    (FieldType.boolean.value, True): "_bs",
    (FieldType.datetime.value, False): "_dt",
    (FieldType.datetime.value, True): "_dts",
}

# suffix → (type, multi_valued), 긴 suffix 우선
_SUFFIX_LOOKUP: list[tuple[str, tuple[str, bool]]] = sorted(
    ((suffix, key) for key, suffix in FIELD_SUFFIXES.items()),
    key=lambda item: len(item[0]),
    reverse=True,
)

RESERVED_FIELDS: dict[str, str] = {
    KEY_FIELD: FieldType.string.value,
    ID_FIELD: FieldType.long.value,
    TYPE_FIELD: FieldType.string.value,
}

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

_datetime_adapter = TypeAdapter(datetime)


class FieldCodec:
    """필드 이름/타입/값 변환의 단일 기준점."""

    # ================= encode =================
    def encode_field_name(self, field: Field) -> str:
        """
        (name, type, multi_valued)로부터 엔진 필드 이름을 만든다.
        Raises:
            UnsupportedFieldType: 매핑되지 않은 타입
        """
        suffix = FIELD_SUFFIXES.get((field.type, field.multi_valued))
        if suffix is None:
            raise UnsupportedFieldType(field.name, field.type)
        return f"{field.name}{suffix}"

    def encode_field_value(self, field: Field) -> Any:
        """
        필드 값을 엔진 원시값으로 변환한다.
        - datetime: UTC 'YYYY-MM-DDTHH:MM:SSZ' 문자열
        - multi_valued: 리스트
        Raises:
            UnsupportedFieldType: 매핑되지 않은 타입
            InvalidFieldValue: 타입에 맞게 변환할 수 없는 값
        """
        if (field.type, field.multi_valued) not in FIELD_SUFFIXES:
            raise UnsupportedFieldType(field.name, field.type)
        if field.value is None:
            return None
        if field.multi_valued:
            values = field.value if isinstance(field.value, (list, tuple, set)) else [field.value]
            return [self._convert(field, v) for v in values]
        return self._convert(field, field.value)

    def encode_document(self, document: Document) -> JSONDict:
        """
        Document를 엔진 색인 레코드로 변환한다.
        같은 인코딩 이름이 반복되면 마지막 필드가 이긴다.
        """
        record: JSONDict = {
            KEY_FIELD: str(document.unique_id),
            ID_FIELD: int(document.object_id),
            TYPE_FIELD: str(document.object_type),
        }
        for field in document.fields:
            record[self.encode_field_name(field)] = self.encode_field_value(field)
        return record

    # ================= decode =================
    def decode_field_name(self, engine_field_name: str) -> tuple[str, str, bool]:
        """
        엔진 필드 이름에서 (name, type, multi_valued)를 복원한다.
        규칙에 맞지 않는 이름은 단일값 string으로 본다.
        """
        if engine_field_name in RESERVED_FIELDS:
            return engine_field_name, RESERVED_FIELDS[engine_field_name], False
        for suffix, (field_type, multi_valued) in _SUFFIX_LOOKUP:
            if engine_field_name.endswith(suffix) and len(engine_field_name) > len(suffix):
                return engine_field_name[: -len(suffix)], field_type, multi_valued
        return engine_field_name, FieldType.string.value, False

    def decode_response_field(self, engine_field_name: str, engine_value: Any) -> Field:
        name, field_type, multi_valued = self.decode_field_name(engine_field_name)
        if multi_valued and engine_value is not None and not isinstance(engine_value, list):
            engine_value = [engine_value]
        elif not multi_valued and engine_field_name not in RESERVED_FIELDS \
                and name == engine_field_name and isinstance(engine_value, list):
            # 규칙 밖 필드가 배열이면 다중값으로 취급
            multi_valued = True
        return Field(name=name, value=engine_value, type=field_type, multi_valued=multi_valued)

    # ================= internal helpers =================
    def _convert(self, field: Field, value: Any) -> Any:
        field_type = field.type
        try:
            if field_type == FieldType.datetime.value:
                return self.to_engine_datetime(value)
            if field_type in (FieldType.int.value, FieldType.long.value):
                if isinstance(value, bool):
                    raise ValueError("boolean is not an integer")
                return int(value)
            if field_type in (FieldType.float.value, FieldType.double.value):
                if isinstance(value, bool):
                    raise ValueError("boolean is not a number")
                return float(value)
            if field_type == FieldType.boolean.value:
                return self._to_bool(value)
            return str(value)
        except (TypeError, ValueError) as e:
            raise InvalidFieldValue(field.name, value, str(e)) from e

    @staticmethod
    def _to_bool(value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        text = str(value).strip().lower()
        if text in _TRUE_VALUES:
            return True
        if text in _FALSE_VALUES:
            return False
        raise ValueError(f"cannot interpret {value!r} as boolean")

    @staticmethod
    def to_engine_datetime(value: Any) -> str:
        """
        날짜/시간 값을 엔진 타임스탬프 문자열로 변환한다.
        타임존이 없는 값은 UTC로 간주한다.
        Raises:
            ValueError: 날짜로 해석할 수 없는 값
        """
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, date):
            parsed = datetime(value.year, value.month, value.day)
        else:
            try:
                parsed = _datetime_adapter.validate_python(value)
            except ValidationError as e:
                raise ValueError(f"unparsable datetime: {e.errors()[0]['msg']}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc).strftime(ENGINE_DATETIME_FORMAT)
