"""
Static metadata policy operator data and the operators used when applying a
resolved metadata policy to metadata.
"""
import copy
import enum
from types import MappingProxyType

from fedtrust.exception import InconsistentOperatorValues
from fedtrust.exception import MissingEssentialParameter
from fedtrust.exception import NotOneOf
from fedtrust.exception import NotSuperset
from fedtrust.exception import UnsupportedCombination
from fedtrust.exception import UnsupportedValueType

POLICY_APPLICATION_ORDER = ('value', 'add', 'default', 'one_of', 'subset_of', 'superset_of',
                            'essential')

SUPPORTED_OPERATORS = frozenset(POLICY_APPLICATION_ORDER)


class ValueKind(enum.Enum):
    STRING = "string"
    INTEGER = "integer"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"


SCALAR_KINDS = frozenset([ValueKind.STRING, ValueKind.INTEGER, ValueKind.DOUBLE,
                          ValueKind.BOOLEAN])

ALL_KINDS = frozenset(ValueKind)

OPERATOR_VALUE_KINDS = MappingProxyType({
    "value": ALL_KINDS,
    "add": frozenset([ValueKind.ARRAY]),
    "default": ALL_KINDS - {ValueKind.NULL},
    "one_of": frozenset([ValueKind.ARRAY]),
    "subset_of": frozenset([ValueKind.ARRAY]),
    "superset_of": frozenset([ValueKind.ARRAY]),
    "essential": frozenset([ValueKind.BOOLEAN])
})

# Allowed kinds of the items when the operator value is an array
CONTAINED_VALUE_KINDS = MappingProxyType({
    "value": SCALAR_KINDS | {ValueKind.OBJECT},
    "add": SCALAR_KINDS,
    "default": SCALAR_KINDS | {ValueKind.OBJECT},
    "one_of": SCALAR_KINDS,
    "subset_of": SCALAR_KINDS,
    "superset_of": SCALAR_KINDS,
    "essential": frozenset()
})

# Which operators may appear together in one parameter's policy. Every operator
# combines with itself.
OPERATOR_COMBINATIONS = MappingProxyType({
    "value": frozenset(["value", "essential"]),
    "add": frozenset(["add", "default", "subset_of", "superset_of", "essential"]),
    "default": frozenset(["default", "add", "one_of", "subset_of", "superset_of", "essential"]),
    "one_of": frozenset(["one_of", "default", "essential"]),
    "subset_of": frozenset(["subset_of", "add", "default", "superset_of", "essential"]),
    "superset_of": frozenset(["superset_of", "add", "default", "subset_of", "essential"]),
    "essential": frozenset(["essential", "value", "add", "default", "one_of", "subset_of",
                            "superset_of"])
})

# The kind the metadata parameter must have for the operator to be applicable
METADATA_PARAMETER_KINDS = MappingProxyType({
    "add": frozenset([ValueKind.ARRAY]),
    "one_of": SCALAR_KINDS,
    "subset_of": frozenset([ValueKind.ARRAY]),
    "superset_of": frozenset([ValueKind.ARRAY]),
})

# Operators for which a space separated scope string is handled as a list
SCOPE_LIST_OPERATORS = frozenset(["add", "subset_of", "superset_of"])


def value_kind(value) -> ValueKind:
    # bool is a subclass of int
    if value is None:
        return ValueKind.NULL
    elif isinstance(value, bool):
        return ValueKind.BOOLEAN
    elif isinstance(value, int):
        return ValueKind.INTEGER
    elif isinstance(value, float):
        return ValueKind.DOUBLE
    elif isinstance(value, str):
        return ValueKind.STRING
    elif isinstance(value, dict):
        return ValueKind.OBJECT
    elif isinstance(value, (list, tuple)):
        return ValueKind.ARRAY
    raise UnsupportedValueType(f"Not a JSON value: {value!r}")


def as_list(val) -> list:
    if isinstance(val, (list, tuple)):
        return list(val)
    return [val]


def union(val1, val2) -> list:
    res = []
    for item in as_list(val1) + as_list(val2):
        if item not in res:
            res.append(item)
    return res


def intersection(val1, val2) -> list:
    _other = as_list(val2)
    res = []
    for item in as_list(val1):
        if item in _other and item not in res:
            res.append(item)
    return res


def is_subset_of(sub, sup) -> bool:
    _sup = as_list(sup)
    return all(item in _sup for item in as_list(sub))


def is_superset_of(sup, sub) -> bool:
    return is_subset_of(sub, sup)


def operators_in(operations: dict) -> list:
    """The supported operators in a parameter policy, in application order."""
    return [op for op in POLICY_APPLICATION_ORDER if op in operations]


def validate_general_rules(parameter: str, operations: dict):
    """
    Check operator value types and that the operators may be combined.
    Unsupported operators are disregarded.
    """
    _operators = operators_in(operations)
    for op in _operators:
        _value = operations[op]
        _kind = value_kind(_value)
        if _kind not in OPERATOR_VALUE_KINDS[op]:
            raise UnsupportedValueType(
                f"Parameter {parameter}: unsupported value type {_kind.value} for {op}")

        if _kind is ValueKind.ARRAY:
            for item in _value:
                _item_kind = value_kind(item)
                if _item_kind not in CONTAINED_VALUE_KINDS[op]:
                    raise UnsupportedValueType(
                        f"Parameter {parameter}: unsupported contained value type "
                        f"{_item_kind.value} for {op}")

        if not set(_operators).issubset(OPERATOR_COMBINATIONS[op]):
            raise UnsupportedCombination(
                f"Parameter {parameter}: unsupported operator combination {', '.join(_operators)}")


def validate_specific_rules(parameter: str, operations: dict):
    """Check that the values of operators that appear together are consistent."""
    _add = operations.get("add")
    _default = operations.get("default")
    _one_of = operations.get("one_of")
    _subset_of = operations.get("subset_of")
    _superset_of = operations.get("superset_of")

    if _add is not None:
        if _subset_of is not None and not is_subset_of(_add, _subset_of):
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: add {_add} is not a subset of subset_of {_subset_of}")
        if _superset_of is not None and not is_superset_of(_add, _superset_of):
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: add {_add} is not a superset of superset_of {_superset_of}")

    if _default is not None:
        if _one_of is not None and _default not in _one_of:
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: default {_default} is not one of {_one_of}")
        if _subset_of is not None and not is_subset_of(_default, _subset_of):
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: default {_default} is not a subset of {_subset_of}")
        if _superset_of is not None and not is_superset_of(_default, _superset_of):
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: default {_default} is not a superset of {_superset_of}")

    if _subset_of is not None and _superset_of is not None:
        if not is_superset_of(_subset_of, _superset_of):
            raise InconsistentOperatorValues(
                f"Parameter {parameter}: subset_of {_subset_of} is not a superset of "
                f"superset_of {_superset_of}")

    if "value" in operations and operations["value"] is None and operations.get("essential"):
        raise InconsistentOperatorValues(
            f"Parameter {parameter}: essential parameter can not be removed by value null")


def is_present(parameter, metadata) -> bool:
    return metadata.get(parameter) is not None


class PolicyOperator(object):
    name = ""

    def check_metadata_value(self, parameter, metadata):
        _kind = value_kind(metadata[parameter])
        if _kind not in METADATA_PARAMETER_KINDS[self.name]:
            raise UnsupportedValueType(
                f"Parameter {parameter}: {self.name} can not be applied to a value of type "
                f"{_kind.value}")

    def __call__(self, parameter, metadata, operator_value):
        raise NotImplementedError()


class Value(PolicyOperator):
    name = "value"

    def __call__(self, parameter, metadata, operator_value):
        if operator_value is None:
            if parameter in metadata:
                del metadata[parameter]
        else:
            # value overrides everything
            metadata[parameter] = copy.deepcopy(operator_value)


class Add(PolicyOperator):
    name = "add"

    def __call__(self, parameter, metadata, operator_value):
        if is_present(parameter, metadata):
            self.check_metadata_value(parameter, metadata)
            metadata[parameter] = union(metadata[parameter], operator_value)
        else:
            metadata[parameter] = copy.deepcopy(operator_value)


class Default(PolicyOperator):
    name = "default"

    def __call__(self, parameter, metadata, operator_value):
        if not is_present(parameter, metadata):
            metadata[parameter] = copy.deepcopy(operator_value)


class OneOf(PolicyOperator):
    name = "one_of"

    def __call__(self, parameter, metadata, operator_value):
        if is_present(parameter, metadata):
            self.check_metadata_value(parameter, metadata)
            if metadata[parameter] not in operator_value:
                raise NotOneOf(f"Parameter {parameter}: {metadata[parameter]} not among "
                               f"{operator_value}")


class SubsetOf(PolicyOperator):
    name = "subset_of"

    def __call__(self, parameter, metadata, operator_value):
        if is_present(parameter, metadata):
            self.check_metadata_value(parameter, metadata)
            _val = intersection(metadata[parameter], operator_value)
            if _val:
                metadata[parameter] = _val
            else:
                del metadata[parameter]


class SupersetOf(PolicyOperator):
    name = "superset_of"

    def __call__(self, parameter, metadata, operator_value):
        if is_present(parameter, metadata):
            self.check_metadata_value(parameter, metadata)
            if not is_superset_of(metadata[parameter], operator_value):
                raise NotSuperset(
                    f"Parameter {parameter}: {metadata[parameter]} not superset of "
                    f"{operator_value}")


class Essential(PolicyOperator):
    name = "essential"

    def __call__(self, parameter, metadata, operator_value):
        if operator_value is True and not is_present(parameter, metadata):
            raise MissingEssentialParameter(f"Essential value missing for {parameter}")


POLICY_OPERATORS = MappingProxyType({
    'value': Value,
    'add': Add,
    "default": Default,
    "one_of": OneOf,
    "subset_of": SubsetOf,
    "superset_of": SupersetOf,
    "essential": Essential
})


def construct_evaluation_sequence():
    return [POLICY_OPERATORS[name]() for name in POLICY_APPLICATION_ORDER]
