import copy
import logging
import threading
from typing import Iterable
from typing import List
from typing import Optional

from cryptojwt.jwt import utc_time_sans_frac

from fedtrust.defaults import DEFAULT_TIMESTAMP_LEEWAY
from fedtrust.entity.function.policy import MetadataPolicyApplicator
from fedtrust.entity.function.policy import MetadataPolicyResolver
from fedtrust.entity_statement import EntityStatement
from fedtrust.exception import AlreadyResolved
from fedtrust.exception import BrokenLinkage
from fedtrust.exception import EmptyBag
from fedtrust.exception import ExpectedSubordinate
from fedtrust.exception import Expired
from fedtrust.exception import InsufficientLength
from fedtrust.exception import NotConfiguration
from fedtrust.exception import NotResolved
from fedtrust.exception import TooShort
from fedtrust.exception import TrustChainError

__author__ = 'roland'

logger = logging.getLogger(__name__)


class TrustChain(object):
    """
    The statements that links a leaf entity to a trust anchor. Leaf entity configuration
    first, then the subordinate statements and last the trust anchor's entity configuration.
    Once the trust anchor is added the chain is resolved and can not be changed.
    """

    def __init__(self,
                 policy_resolver: Optional[MetadataPolicyResolver] = None,
                 policy_applicator: Optional[MetadataPolicyApplicator] = None,
                 leeway: int = DEFAULT_TIMESTAMP_LEEWAY):
        self.policy_resolver = policy_resolver or MetadataPolicyResolver()
        self.policy_applicator = policy_applicator or MetadataPolicyApplicator()
        self.leeway = leeway
        self._statements = []
        self._resolved = False
        self._exp = 0
        self._critical_operators = []
        self._resolved_metadata = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._statements)

    def __repr__(self):
        return f"TrustChain({' -> '.join(s.get_issuer() for s in self._statements)})"

    def is_empty(self) -> bool:
        return not self._statements

    def is_resolved(self) -> bool:
        return self._resolved

    def _check_not_resolved(self):
        if self._resolved:
            raise AlreadyResolved("Trust chain is already resolved")

    def _check_resolved(self):
        if not self._resolved:
            raise NotResolved("Trust chain is not resolved")

    def _check_expiration(self, statement: EntityStatement):
        _now = utc_time_sans_frac()
        if statement.get_expiration_time() + self.leeway <= _now:
            raise Expired(
                f"Statement issued by '{statement.get_issuer()}' about '{statement.get_subject()}' "
                f"expired at {statement.get_expiration_time()}")

    def _append(self, statement: EntityStatement):
        self._statements.append(statement)
        if not self._exp or statement.get_expiration_time() < self._exp:
            self._exp = statement.get_expiration_time()

    def _gather_critical_operators(self, statement: EntityStatement):
        for op in statement.get_metadata_policy_crit():
            if op not in self._critical_operators:
                self._critical_operators.append(op)

    def add_leaf(self, statement: EntityStatement):
        self._check_not_resolved()
        if not self.is_empty():
            raise TrustChainError("Trust chain already has a leaf")
        if not statement.is_configuration():
            raise NotConfiguration(
                f"Leaf must be an entity configuration, got statement issued by "
                f"'{statement.get_issuer()}' about '{statement.get_subject()}'")
        self._check_expiration(statement)
        statement.verify_with_key_set()
        self._append(statement)

    def add_subordinate(self, statement: EntityStatement):
        self._check_not_resolved()
        if self.is_empty():
            raise InsufficientLength("A subordinate statement can not be added before the leaf")
        if statement.is_configuration():
            raise ExpectedSubordinate(
                f"Expected a subordinate statement, got the entity configuration of "
                f"'{statement.get_issuer()}'")

        _previous = self._statements[-1]
        if statement.get_subject() != _previous.get_issuer():
            raise BrokenLinkage(
                f"Statement about '{statement.get_subject()}' does not follow statement issued "
                f"by '{_previous.get_issuer()}'")
        self._check_expiration(statement)

        # The superior vouches for the keys the previous statement was signed with
        _previous.verify_with_key_set(statement.get_jwks())
        self._append(statement)
        self._gather_critical_operators(statement)

    def add_trust_anchor(self, statement: EntityStatement):
        self._check_not_resolved()
        if self.is_empty():
            raise InsufficientLength("A trust anchor can not be added before the leaf")
        if len(self._statements) < 2:
            raise InsufficientLength(
                "A trust chain must contain at least one subordinate statement")
        if not statement.is_configuration():
            raise NotConfiguration(
                f"Trust anchor must be an entity configuration, got statement issued by "
                f"'{statement.get_issuer()}' about '{statement.get_subject()}'")
        self._check_expiration(statement)

        _previous = self._statements[-1]
        if statement.get_issuer() != _previous.get_issuer():
            raise BrokenLinkage(
                f"Trust anchor '{statement.get_issuer()}' did not issue the statement about "
                f"'{_previous.get_subject()}'")

        statement.verify_with_key_set()
        _previous.verify_with_key_set(statement.get_jwks())
        self._append(statement)
        self._gather_critical_operators(statement)
        self._resolved = True
        logger.debug(f"Resolved {self}")

    def get_resolved_length(self) -> int:
        """
        The number of entities in the chain. The trust anchor is represented by two
        statements, its entity configuration and the statement about its subordinate.
        """
        self._check_resolved()
        return len(self._statements) - 1

    def get_resolved_leaf(self) -> EntityStatement:
        self._check_resolved()
        return self._statements[0]

    def get_resolved_immediate_superior(self) -> EntityStatement:
        self._check_resolved()
        if len(self._statements) < 2:
            raise TooShort("Trust chain has no immediate superior")
        return self._statements[1]

    def get_resolved_trust_anchor(self) -> EntityStatement:
        self._check_resolved()
        return self._statements[-1]

    def get_resolved_trust_anchor_id(self) -> str:
        return self.get_resolved_trust_anchor().get_issuer()

    def get_resolved_expiration_time(self) -> int:
        self._check_resolved()
        return self._exp

    def get_statements(self) -> List[EntityStatement]:
        self._check_resolved()
        return list(self._statements)

    def get_tokens(self) -> List[str]:
        """Signed statements, leaf first."""
        self._check_resolved()
        return [s.token for s in self._statements]

    def get_resolved_metadata(self, entity_type: str) -> dict:
        """
        Metadata for one entity type after all the metadata policies in the chain has
        been applied to the leaf's metadata.

        :param entity_type: Entity type
        :return: Metadata as a dictionary
        """
        self._check_resolved()
        with self._lock:
            if entity_type not in self._resolved_metadata:
                self._resolved_metadata[entity_type] = self._resolve_metadata(entity_type)
            return copy.deepcopy(self._resolved_metadata[entity_type])

    def _resolve_metadata(self, entity_type: str) -> dict:
        _metadata = copy.deepcopy(self._statements[0].get_metadata(entity_type) or {})

        _policies = []
        # Trust anchor first
        for statement in reversed(self._statements[1:]):
            _policy = statement.get_metadata_policy_raw()
            if not _policy:
                continue
            _policies.append(_policy)
            if statement.get_metadata_policy(entity_type) is None:
                continue

            _resolved_policy = self.policy_resolver(
                entity_type, self.policy_resolver.ensure_format(_policies),
                self._critical_operators)
            _metadata = self.policy_applicator(_resolved_policy, _metadata)

        logger.debug(f"Resolved {entity_type} metadata: {_metadata}")
        return _metadata


class TrustChainFactory(object):

    def __init__(self,
                 policy_resolver: Optional[MetadataPolicyResolver] = None,
                 policy_applicator: Optional[MetadataPolicyApplicator] = None,
                 leeway: int = DEFAULT_TIMESTAMP_LEEWAY):
        self.policy_resolver = policy_resolver or MetadataPolicyResolver()
        self.policy_applicator = policy_applicator or MetadataPolicyApplicator()
        self.leeway = leeway

    def empty(self) -> TrustChain:
        return TrustChain(self.policy_resolver, self.policy_applicator, self.leeway)

    def from_statements(self, *statements: EntityStatement) -> TrustChain:
        """
        :param statements: Leaf entity configuration first, trust anchor entity configuration
            last.
        :return: A resolved TrustChain instance
        """
        if len(statements) < 3:
            raise InsufficientLength(
                f"A trust chain needs at least 3 statements, got {len(statements)}")

        trust_chain = self.empty()
        trust_chain.add_leaf(statements[0])
        for statement in statements[1:-1]:
            trust_chain.add_subordinate(statement)
        trust_chain.add_trust_anchor(statements[-1])
        return trust_chain

    def from_tokens(self, *tokens: str) -> TrustChain:
        return self.from_statements(*[EntityStatement(t) for t in tokens])


class TrustChainBag(object):
    """Resolved trust chains for one leaf entity, shortest first."""

    def __init__(self, trust_chain: TrustChain, *trust_chains: TrustChain):
        self._chains = []
        self.add(trust_chain, *trust_chains)

    def add(self, trust_chain: TrustChain, *trust_chains: TrustChain):
        self._chains.extend([trust_chain] + list(trust_chains))
        self._chains.sort(key=lambda c: c.get_resolved_length())

    def get_shortest(self) -> TrustChain:
        if not self._chains:
            raise EmptyBag("No trust chains in bag")
        return self._chains[0]

    def get_shortest_by_trust_anchor_priority(self,
                                              trust_anchor_id: str,
                                              *trust_anchor_ids: str) -> Optional[TrustChain]:
        """
        The trust anchor ids are given in priority order, the first having the highest
        priority. Among chains to the same trust anchor the shortest is chosen.

        :return: A TrustChain instance or None if no chain ends in any of the given
            trust anchors
        """
        _priority = {}
        for _id in [trust_anchor_id] + list(trust_anchor_ids):
            _priority.setdefault(_id, len(_priority))

        _lowest = len(_priority)
        _sorted = sorted(self._chains,
                         key=lambda c: (_priority.get(c.get_resolved_trust_anchor_id(), _lowest),
                                        c.get_resolved_length()))
        if _sorted and _sorted[0].get_resolved_trust_anchor_id() in _priority:
            return _sorted[0]
        return None

    def get_all(self) -> List[TrustChain]:
        return list(self._chains)

    def get_count(self) -> int:
        return len(self._chains)

    def __len__(self):
        return len(self._chains)

    def __iter__(self):
        return iter(list(self._chains))


def chains2dict(trust_chains: Iterable[TrustChain]) -> dict:
    """
    Converts a list of trust chains to a dictionary with the trust anchors entity_id as key.
    If there are more than one trust chain that has the same trust anchor the shortest
    one is preferred.

    :param trust_chains: list of TrustChain instances
    :return: dictionary with trust anchor entity ids are keys and TrustChain instances as values
    """
    res = {}
    for trust_chain in trust_chains:
        _anchor = trust_chain.get_resolved_trust_anchor_id()
        if _anchor in res:
            if trust_chain.get_resolved_length() < res[_anchor].get_resolved_length():
                res[_anchor] = trust_chain
        else:
            res[_anchor] = trust_chain
    return res
