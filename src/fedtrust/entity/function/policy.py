import copy
import logging
from typing import Iterable
from typing import List
from typing import Optional

from fedtrust.entity.function import Function
from fedtrust.entity.function.policy_operator import construct_evaluation_sequence
from fedtrust.entity.function.policy_operator import intersection
from fedtrust.entity.function.policy_operator import operators_in
from fedtrust.entity.function.policy_operator import SCOPE_LIST_OPERATORS
from fedtrust.entity.function.policy_operator import SUPPORTED_OPERATORS
from fedtrust.entity.function.policy_operator import union
from fedtrust.entity.function.policy_operator import validate_general_rules
from fedtrust.entity.function.policy_operator import validate_specific_rules
from fedtrust.exception import ConflictingValue
from fedtrust.exception import EmptyIntersection
from fedtrust.exception import InvalidEssentialChange
from fedtrust.exception import InvalidPolicyFormat
from fedtrust.exception import UnsupportedCriticalOperator

logger = logging.getLogger(__name__)

SCOPE = "scope"


def combine_equal(parameter, operator, superior, child):
    if superior != child:
        raise ConflictingValue(
            f"Parameter {parameter}: different values for {operator}: {superior} != {child}")
    return superior


def combine_union(parameter, operator, superior, child):
    return union(superior, child)


def combine_intersection(parameter, operator, superior, child):
    res = intersection(superior, child)
    if not res:
        raise EmptyIntersection(
            f"Parameter {parameter}: empty intersection for {operator}: {superior} | {child}")
    return res


def combine_essential(parameter, operator, superior, child):
    # A subordinate may go from False to True but not the other way around
    if superior is True and child is False:
        raise InvalidEssentialChange(
            f"Parameter {parameter}: essential can not go from true to false")
    return superior or child


COMBINE = {
    "value": combine_equal,
    "default": combine_equal,
    "add": combine_union,
    "superset_of": combine_union,
    "one_of": combine_intersection,
    "subset_of": combine_intersection,
    "essential": combine_essential
}


class MetadataPolicyResolver(Function):
    """
    Merges the metadata policies of a trust chain into one policy per parameter.
    The policies are given most superior first.
    """

    def ensure_format(self, metadata_policies: Iterable) -> List[dict]:
        """
        Checks the structure, entity type -> parameter -> operator -> value, of a list of
        metadata policies. Nothing is said about the operators or their values.

        :param metadata_policies: List of metadata policies
        :return: The metadata policies as a list
        """
        if not isinstance(metadata_policies, (list, tuple)):
            raise InvalidPolicyFormat(f"Expected a list of metadata policies: {metadata_policies}")

        for metadata_policy in metadata_policies:
            if not isinstance(metadata_policy, dict):
                raise InvalidPolicyFormat(f"Invalid metadata policy: {metadata_policy}")
            for entity_type, policy in metadata_policy.items():
                if not isinstance(entity_type, str) or not isinstance(policy, dict):
                    raise InvalidPolicyFormat(
                        f"Invalid metadata policy for entity type {entity_type}: {policy}")
                for parameter, operations in policy.items():
                    if not isinstance(parameter, str) or not isinstance(operations, dict):
                        raise InvalidPolicyFormat(
                            f"Invalid format for metadata policy operations: {operations}")
                    for operator in operations.keys():
                        if not isinstance(operator, str):
                            raise InvalidPolicyFormat(f"Invalid operator name: {operator}")

        return list(metadata_policies)

    def resolve(self,
                entity_type: str,
                metadata_policies: List[dict],
                critical_operators: Optional[Iterable[str]] = None) -> dict:
        """
        :param entity_type: Which Entity Type the policies should be resolved for
        :param metadata_policies: Metadata policies, most superior first
        :param critical_operators: Operators that must be understood
        :return: The resolved metadata policy for the entity type
        """
        _critical = set(critical_operators or [])
        combined_policy = {}

        for metadata_policy in metadata_policies:
            next_policy = metadata_policy.get(entity_type)
            if not isinstance(next_policy, dict):
                continue

            _all_operators = set()
            for operations in next_policy.values():
                if isinstance(operations, dict):
                    _all_operators.update(operations.keys())

            # Unsupported operators are disregarded unless they are critical
            _unsupported = _critical.intersection(_all_operators.difference(SUPPORTED_OPERATORS))
            if _unsupported:
                raise UnsupportedCriticalOperator(
                    f"Unsupported critical metadata policy operator(s): "
                    f"{', '.join(sorted(_unsupported))}")

            for parameter, operations in next_policy.items():
                if not isinstance(operations, dict):
                    raise InvalidPolicyFormat(
                        f"Invalid format for metadata policy operations: {operations}")

                validate_general_rules(parameter, operations)
                validate_specific_rules(parameter, operations)

                _operators = operators_in(operations)
                if not _operators:
                    continue

                _combined = combined_policy.setdefault(parameter, {})
                for operator in _operators:
                    if operator not in _combined:
                        _combined[operator] = copy.deepcopy(operations[operator])
                    else:
                        _combined[operator] = COMBINE[operator](parameter, operator,
                                                                _combined[operator],
                                                                operations[operator])

                # Individually valid policies may together be invalid
                validate_general_rules(parameter, _combined)
                validate_specific_rules(parameter, _combined)

        logger.debug(f"Combined policy for {entity_type}: {combined_policy}")
        return combined_policy

    def __call__(self, entity_type, metadata_policies, critical_operators=None):
        return self.resolve(entity_type, metadata_policies, critical_operators)


class MetadataPolicyApplicator(Function):

    def __init__(self, upstream_get=None):
        Function.__init__(self, upstream_get)
        self.policy_operators = construct_evaluation_sequence()

    def apply(self, resolved_policy: dict, metadata: Optional[dict]) -> dict:
        """
        Apply a resolved metadata policy to metadata.

        :param resolved_policy: Output from MetadataPolicyResolver
        :param metadata: Metadata for one entity type. Not modified.
        :return: Metadata that adheres to the metadata policy
        """
        _metadata = copy.deepcopy(metadata) if metadata else {}

        for parameter, operations in resolved_policy.items():
            # scope may be a space separated string in metadata, it stays one
            _as_string = parameter == SCOPE and isinstance(_metadata.get(parameter), str)

            for operator in self.policy_operators:
                if operator.name not in operations:
                    continue

                if (_as_string and operator.name in SCOPE_LIST_OPERATORS
                        and isinstance(_metadata.get(parameter), str)):
                    _metadata[parameter] = _metadata[parameter].split()

                operator(parameter, _metadata, operations[operator.name])

                if _as_string and isinstance(_metadata.get(parameter), list):
                    _metadata[parameter] = " ".join(_metadata[parameter])

        logger.debug(f"After applied policy: {_metadata}")
        return _metadata

    def __call__(self, resolved_policy, metadata):
        return self.apply(resolved_policy, metadata)
