class DomainError(Exception):
    """도메인/유즈케이스 공통 베이스 예외"""
    pass

class ResourceNotFound(DomainError):
    def __init__(self, resource: str, detail: str | None = None):
        super().__init__(detail or f"{resource} not found")
        self.resource = resource

class PermissionDenied(DomainError):
    def __init__(self, resource: str, detail: str | None = None):
        super().__init__(detail or f"{resource} permission denied")
        self.resource = resource

class InvalidInput(DomainError):
    def __init__(self, message: str):
        super().__init__(message)

class IndexingFailed(DomainError):
    def __init__(self, index_name: str, reason: str):
        super().__init__(f"Indexing failed for {index_name}: {reason}")
        self.index_name = index_name


# ================== 필드 변환 ==================
class FieldCodecError(InvalidInput):
    """필드 이름/값 변환 실패 공통 예외"""
    def __init__(self, field_name: str, message: str):
        super().__init__(message)
        self.field_name = field_name

class UnsupportedFieldType(FieldCodecError):
    def __init__(self, field_name: str, field_type: str):
        super().__init__(field_name, f"Unsupported field type '{field_type}' for field '{field_name}'")
        self.field_type = field_type

class InvalidFieldValue(FieldCodecError):
    def __init__(self, field_name: str, value, reason: str):
        super().__init__(field_name, f"Invalid value {value!r} for field '{field_name}': {reason}")
        self.value = value

class MalformedFilterSpec(InvalidInput):
    def __init__(self, key: str, reason: str):
        super().__init__(f"Malformed filter '{key}': {reason}")
        self.key = key


# ================== 엔진 통신 ==================
class TransportError(DomainError):
    """엔진(OpenSearch) 통신/프로토콜 실패"""
    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code
