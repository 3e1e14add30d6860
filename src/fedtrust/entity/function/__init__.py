import logging
from typing import Callable
from typing import List
from typing import Optional

from idpyoidc.impexp import ImpExp

logger = logging.getLogger(__name__)


class Function(ImpExp):

    def __init__(self, upstream_get: Optional[Callable] = None):
        ImpExp.__init__(self)
        self.upstream_get = upstream_get


def get_verified_trust_chains(resolver, entity_id: str, trust_anchor_ids: List[str]):
    """
    Resolve the trust chains for an entity and return them shortest first.

    :param resolver: A TrustChainResolver instance
    :param entity_id: The leaf entity
    :param trust_anchor_ids: Acceptable trust anchors
    :return: List of TrustChain instances
    """
    return resolver(entity_id, trust_anchor_ids).get_all()


def get_entity_endpoint(resolver, entity_id, trust_anchor_ids, entity_type, metadata_parameter):
    # get endpoint from the resolved metadata
    trust_chains = get_verified_trust_chains(resolver, entity_id, trust_anchor_ids)
    # pick one
    _metadata = trust_chains[0].get_resolved_metadata(entity_type)
    return _metadata.get(metadata_parameter, "")
