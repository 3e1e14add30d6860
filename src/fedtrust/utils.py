import logging
from typing import Optional
from typing import Union

from idpyoidc.util import instantiate

from fedtrust.configure import ResolverConfiguration
from fedtrust.entity.function.trust_chain_resolver import TrustChainResolver
from fedtrust.entity_statement.statement import TrustChainFactory

logger = logging.getLogger(__name__)


def make_trust_chain_resolver(conf: Optional[Union[dict, ResolverConfiguration]] = None,
                              httpc=None) -> TrustChainResolver:
    """
    Build a trust chain resolver together with the statement fetcher, cache and trust chain
    factory it uses.

    :param conf: Resolver configuration
    :param httpc: HTTP client, defaults to requests.request
    :return: TrustChainResolver instance
    """
    if not isinstance(conf, ResolverConfiguration):
        conf = ResolverConfiguration(conf)

    _args = {
        "fetcher": {
            "httpc": httpc,
            "httpc_params": conf.httpc_params,
            "allowed_delta": conf.allowed_delta
        }
    }

    _functions = {}
    for key, val in conf.functions.items():
        _kwargs = val.get("kwargs", {}).copy()
        _kwargs.update(_args.get(key, {}))
        _functions[key] = instantiate(val["class"], **_kwargs)

    trust_chain_factory = TrustChainFactory(
        policy_resolver=_functions["policy_resolver"],
        policy_applicator=_functions["policy_applicator"],
        leeway=conf.timestamp_leeway)

    logger.debug(f"Trust anchors: {list(conf.trust_anchors.keys())}")
    return TrustChainResolver(fetcher=_functions["fetcher"],
                              trust_chain_factory=trust_chain_factory,
                              cache=_functions["cache"],
                              max_cache_duration=conf.max_cache_duration,
                              max_trust_chain_depth=conf.max_trust_chain_depth,
                              max_authority_hints=conf.max_authority_hints,
                              trust_anchors=conf.trust_anchors)
