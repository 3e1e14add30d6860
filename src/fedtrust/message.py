""" Classes used to describe the claims of an Entity Statement."""
import logging

from idpyoidc.message import Message
from idpyoidc.message import OPTIONAL_LIST_OF_STRINGS
from idpyoidc.message import SINGLE_OPTIONAL_STRING
from idpyoidc.message import SINGLE_REQUIRED_INT
from idpyoidc.message import SINGLE_REQUIRED_STRING
from idpyoidc.message.oidc import dict_deser
from idpyoidc.message.oidc import msg_ser_json
from idpyoidc.message.oidc import SINGLE_OPTIONAL_DICT

SINGLE_REQUIRED_DICT = (dict, True, msg_ser_json, dict_deser, False)

LOGGER = logging.getLogger(__name__)


class EntityStatement(Message):
    """The claims of an Entity Statement. Expiration is checked by the trust chain."""
    c_param = {
        "sub": SINGLE_REQUIRED_STRING,
        'iss': SINGLE_REQUIRED_STRING,
        'exp': SINGLE_REQUIRED_INT,
        'iat': SINGLE_REQUIRED_INT,
        'jwks': SINGLE_REQUIRED_DICT,
        'aud': SINGLE_OPTIONAL_STRING,
        "jti": SINGLE_OPTIONAL_STRING,
        'authority_hints': OPTIONAL_LIST_OF_STRINGS,
        'metadata': SINGLE_OPTIONAL_DICT,
        'metadata_policy': SINGLE_OPTIONAL_DICT,
        'metadata_policy_crit': OPTIONAL_LIST_OF_STRINGS,
        'constraints': SINGLE_OPTIONAL_DICT,
        "crit": OPTIONAL_LIST_OF_STRINGS,
        'trust_anchor_id': SINGLE_OPTIONAL_STRING
    }

    def verify(self, **kwargs):
        super(EntityStatement, self).verify(**kwargs)

        if "authority_hints" in self and self["iss"] != self["sub"]:
            raise ValueError("authority_hints not allowed in a subordinate statement")

        for claim in ['metadata', 'metadata_policy']:
            _val = self.get(claim)
            if _val is None:
                continue
            for entity_type, info in _val.items():
                if not isinstance(info, dict):
                    raise ValueError(f"{claim} for '{entity_type}' is not a JSON object")
        return True
