"""Domain 值对象"""

from apprunner.domain.value_objects.http_method import HttpMethod
from apprunner.domain.value_objects.input_type import InputType
from apprunner.domain.value_objects.key_value import KeyValuePair
from apprunner.domain.value_objects.resource_kind import ResourceKind
from apprunner.domain.value_objects.run_status import RunStatus

__all__ = ["HttpMethod", "InputType", "KeyValuePair", "ResourceKind", "RunStatus"]
