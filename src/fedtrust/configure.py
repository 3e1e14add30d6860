import json
import logging
from typing import Dict
from typing import Optional

from idpyoidc.configure import Base
from idpyoidc.configure import add_path_to_filename
from idpyoidc.configure import lower_or_upper

from fedtrust.defaults import DEFAULT_ALLOWED_DELTA
from fedtrust.defaults import DEFAULT_MAX_AUTHORITY_HINTS
from fedtrust.defaults import DEFAULT_MAX_CACHE_DURATION
from fedtrust.defaults import DEFAULT_MAX_TRUST_CHAIN_DEPTH
from fedtrust.defaults import DEFAULT_TIMESTAMP_LEEWAY
from fedtrust.defaults import MAX_AUTHORITY_HINTS_CEILING
from fedtrust.defaults import MAX_TRUST_CHAIN_DEPTH_CEILING
from fedtrust.defaults import TRUST_CHAIN_FUNCTIONS

logger = logging.getLogger(__name__)

DEFAULT_RESOLVER_CONFIG = {
    "trust_anchors": {},
    "max_trust_chain_depth": DEFAULT_MAX_TRUST_CHAIN_DEPTH,
    "max_authority_hints": DEFAULT_MAX_AUTHORITY_HINTS,
    "max_cache_duration": DEFAULT_MAX_CACHE_DURATION,
    "timestamp_leeway": DEFAULT_TIMESTAMP_LEEWAY,
    "allowed_delta": DEFAULT_ALLOWED_DELTA,
    "httpc_params": {}
}


def load_trust_anchors(spec, base_path: str = '') -> dict:
    """
    :param spec: Either a dictionary with entity ids as keys and JWKS as values or
        the name of a JSON file containing such a dictionary.
    """
    if isinstance(spec, dict):
        return spec

    with open(add_path_to_filename(spec, base_path), "r") as fp:
        return json.loads(fp.read())


class ResolverConfiguration(Base):
    """Trust chain resolver configuration."""

    def __init__(self,
                 conf: Optional[Dict] = None,
                 base_path: str = '',
                 domain: Optional[str] = "",
                 port: Optional[int] = 0):
        conf = conf or {}
        Base.__init__(self, conf=conf, base_path=base_path, domain=domain, port=port)

        for key, default in DEFAULT_RESOLVER_CONFIG.items():
            _val = lower_or_upper(conf, key)
            setattr(self, key, default if _val is None else _val)

        self.trust_anchors = load_trust_anchors(self.trust_anchors or {}, base_path)

        _depth = int(self.max_trust_chain_depth)
        if _depth > MAX_TRUST_CHAIN_DEPTH_CEILING:
            logger.warning(
                f"max_trust_chain_depth {_depth} lowered to {MAX_TRUST_CHAIN_DEPTH_CEILING}")
        self.max_trust_chain_depth = max(1, min(_depth, MAX_TRUST_CHAIN_DEPTH_CEILING))

        _hints = int(self.max_authority_hints)
        if _hints > MAX_AUTHORITY_HINTS_CEILING:
            logger.warning(
                f"max_authority_hints {_hints} lowered to {MAX_AUTHORITY_HINTS_CEILING}")
        self.max_authority_hints = max(1, min(_hints, MAX_AUTHORITY_HINTS_CEILING))

        _functions = conf.get("functions", {})
        self.functions = {name: _functions.get(name, spec)
                          for name, spec in TRUST_CHAIN_FUNCTIONS.items()}
