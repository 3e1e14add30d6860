import logging
from typing import Callable
from typing import List
from typing import Optional
from typing import Tuple

from cryptojwt.exception import JWKESTException
from cryptojwt.jwt import utc_time_sans_frac
from idpyoidc.exception import MissingPage
from requests.exceptions import RequestException

from fedtrust.defaults import DEFAULT_MAX_AUTHORITY_HINTS
from fedtrust.defaults import DEFAULT_MAX_CACHE_DURATION
from fedtrust.defaults import DEFAULT_MAX_TRUST_CHAIN_DEPTH
from fedtrust.defaults import MAX_AUTHORITY_HINTS_CEILING
from fedtrust.defaults import MAX_TRUST_CHAIN_DEPTH_CEILING
from fedtrust.entity.function import Function
from fedtrust.entity_statement.cache import ESCache
from fedtrust.entity_statement.fetch import EntityStatementFetcher
from fedtrust.entity_statement.statement import TrustChain
from fedtrust.entity_statement.statement import TrustChainBag
from fedtrust.entity_statement.statement import TrustChainFactory
from fedtrust.exception import FailedInformationRetrieval
from fedtrust.exception import FedTrustError
from fedtrust.exception import InvalidStart
from fedtrust.exception import NoTrustChainResolved

logger = logging.getLogger(__name__)

# Failures that only abort one branch of the search or one trust chain
DISCOVERY_ERRORS = (FedTrustError, MissingPage, RequestException, JWKESTException, ValueError)


def clamp(value: int, lowest: int, highest: int) -> int:
    return max(lowest, min(int(value), highest))


class TrustChainResolver(Function):
    """
    Finds and builds the trust chains from a leaf entity to a set of trust anchors.
    The search follows authority hints upwards, depth first.
    """

    def __init__(self,
                 fetcher: Optional[EntityStatementFetcher] = None,
                 trust_chain_factory: Optional[TrustChainFactory] = None,
                 cache: Optional[ESCache] = None,
                 max_cache_duration: int = DEFAULT_MAX_CACHE_DURATION,
                 max_trust_chain_depth: int = DEFAULT_MAX_TRUST_CHAIN_DEPTH,
                 max_authority_hints: int = DEFAULT_MAX_AUTHORITY_HINTS,
                 trust_anchors: Optional[dict] = None,
                 upstream_get: Optional[Callable] = None,
                 **kwargs):
        Function.__init__(self, upstream_get)
        self.fetcher = fetcher or EntityStatementFetcher()
        self.trust_chain_factory = trust_chain_factory or TrustChainFactory()
        self.cache = cache
        self.max_cache_duration = max_cache_duration
        self.max_trust_chain_depth = clamp(max_trust_chain_depth, 1,
                                           MAX_TRUST_CHAIN_DEPTH_CEILING)
        self.max_authority_hints = clamp(max_authority_hints, 1, MAX_AUTHORITY_HINTS_CEILING)
        self.trust_anchors = {}
        for entity_id, jwks in (trust_anchors or {}).items():
            self.add_trust_anchor(entity_id, jwks)

    def add_trust_anchor(self, entity_id: str, jwks: dict):
        """
        Pin the keys of a trust anchor. A trust anchor's entity configuration must be
        signed with one of the pinned keys.
        """
        self.trust_anchors[entity_id] = jwks

    def get_configuration_chains(self,
                                 entity_id: str,
                                 trust_anchor_ids: List[str],
                                 path: Tuple[str, ...] = (),
                                 depth: int = 1) -> List[Tuple[str, ...]]:
        """
        Search for paths of entity ids from an entity to any of the trust anchors.

        :param entity_id: Where to start
        :param trust_anchor_ids: Where to stop
        :param path: The entity ids that lead here
        :param depth: Length of the path including this entity
        :return: List of paths, each one starting with the leaf and ending with a trust anchor
        """
        if not entity_id or not trust_anchor_ids:
            return []

        if depth > self.max_trust_chain_depth:
            logger.debug(f"Max trust chain depth reached at '{entity_id}', path: {path}")
            return []

        if entity_id in path:
            logger.warning(f"Loop detected at '{entity_id}', path: {path}")
            return []

        try:
            _config = self.fetcher.fetch_configuration(entity_id)
        except DISCOVERY_ERRORS as err:
            logger.error(f"Could not get entity configuration for '{entity_id}': {err}")
            return []

        _path = path + (entity_id,)
        if entity_id in trust_anchor_ids:
            logger.debug(f"Reached trust anchor: {_path}")
            return [_path]

        _authority_hints = _config.get_authority_hints()
        if not _authority_hints:
            logger.debug(f"No authority hints for '{entity_id}'")
            return []

        if len(_authority_hints) > self.max_authority_hints:
            logger.warning(
                f"'{entity_id}' has {len(_authority_hints)} authority hints, "
                f"max is {self.max_authority_hints}")
            return []

        res = []
        for authority in _authority_hints:
            res.extend(self.get_configuration_chains(authority, trust_anchor_ids, _path,
                                                     depth + 1))
        return res

    def build_chain(self, path: Tuple[str, ...]) -> TrustChain:
        """
        Materialize a trust chain from a path of entity ids. The statements about the
        subordinates are fetched from the superiors.

        :param path: Entity ids, leaf first and trust anchor last
        :return: A resolved TrustChain instance
        """
        trust_chain = self.trust_chain_factory.empty()
        _leaf = self.fetcher.fetch_configuration(path[0])
        trust_chain.add_leaf(_leaf)

        # The leaf is asked about by the identifier it uses for itself
        subordinate = _leaf.get_issuer()
        for superior in path[1:]:
            _superior_config = self.fetcher.fetch_configuration(superior)
            _fetch_endpoint = _superior_config.get_federation_fetch_endpoint()
            if not _fetch_endpoint:
                raise FailedInformationRetrieval(f"'{superior}' has no federation fetch endpoint")
            logger.debug(f"Federation fetch endpoint: '{_fetch_endpoint}' for '{superior}'")
            trust_chain.add_subordinate(
                self.fetcher.fetch_subordinate_statement(_fetch_endpoint, subordinate))
            subordinate = superior

        _trust_anchor = self.fetcher.fetch_configuration(path[-1])
        _jwks = self.trust_anchors.get(path[-1])
        if _jwks:
            _trust_anchor.verify_with_key_set(_jwks)
        trust_chain.add_trust_anchor(_trust_anchor)
        return trust_chain

    def _from_cache(self, entity_id: str, trust_anchor_id: str) -> Optional[TrustChain]:
        if self.cache is None:
            return None

        _tokens = self.cache.get(entity_id, trust_anchor_id)
        if not _tokens:
            return None

        try:
            trust_chain = self.trust_chain_factory.from_tokens(*_tokens)
            _jwks = self.trust_anchors.get(trust_anchor_id)
            if _jwks:
                trust_chain.get_resolved_trust_anchor().verify_with_key_set(_jwks)
        except DISCOVERY_ERRORS as err:
            logger.warning(
                f"Cached trust chain from '{entity_id}' to '{trust_anchor_id}' unusable: {err}")
            self.cache.delete(entity_id, trust_anchor_id)
            return None

        logger.debug(f"Using cached trust chain from '{entity_id}' to '{trust_anchor_id}'")
        return trust_chain

    def _to_cache(self, entity_id: str, trust_chain: TrustChain):
        if self.cache is None:
            return

        _ttl = min(self.max_cache_duration,
                   trust_chain.get_resolved_expiration_time() - utc_time_sans_frac())
        self.cache.set(trust_chain.get_tokens(), _ttl, entity_id,
                       trust_chain.get_resolved_trust_anchor_id())

    def resolve(self, entity_id: str, trust_anchor_ids: List[str]) -> TrustChainBag:
        """
        :param entity_id: The leaf entity
        :param trust_anchor_ids: Acceptable trust anchors
        :return: TrustChainBag instance
        """
        if not entity_id or not isinstance(entity_id, str):
            raise InvalidStart("No entity id to start from")
        if not trust_anchor_ids:
            raise InvalidStart("No trust anchors")

        trust_chains = []
        _remaining = []
        for trust_anchor_id in trust_anchor_ids:
            _chain = self._from_cache(entity_id, trust_anchor_id)
            if _chain:
                trust_chains.append(_chain)
            elif trust_anchor_id not in _remaining:
                _remaining.append(trust_anchor_id)

        if _remaining:
            for path in self.get_configuration_chains(entity_id, _remaining):
                logger.debug(f"Building trust chain for path: {path}")
                try:
                    _chain = self.build_chain(path)
                except DISCOVERY_ERRORS as err:
                    logger.error(f"Could not build trust chain for {path}: {err}")
                    continue

                self._to_cache(entity_id, _chain)
                trust_chains.append(_chain)

        if not trust_chains:
            raise NoTrustChainResolved(
                f"No trust chain from '{entity_id}' to any of {', '.join(trust_anchor_ids)}")

        return TrustChainBag(*trust_chains)

    def __call__(self, entity_id: str, trust_anchor_ids: List[str]) -> TrustChainBag:
        return self.resolve(entity_id, trust_anchor_ids)
