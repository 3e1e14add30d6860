import json
import logging
from typing import List
from typing import Optional

from cryptojwt.jwk import JWK
from cryptojwt.jws.jws import JWS
from cryptojwt.jwt import utc_time_sans_frac

from fedtrust.defaults import ENTITY_STATEMENT_TYPE

logger = logging.getLogger(__name__)

KEY_TYPE2ALG = {
    "EC": "ES256",
    "RSA": "RS256",
    "OKP": "EdDSA"
}


def create_entity_statement(iss: str,
                            sub: str,
                            keys: List[JWK],
                            jwks: Optional[dict] = None,
                            metadata: Optional[dict] = None,
                            metadata_policy: Optional[dict] = None,
                            metadata_policy_crit: Optional[List[str]] = None,
                            authority_hints: Optional[List[str]] = None,
                            lifetime: int = 86400,
                            iat: Optional[int] = None,
                            aud: str = '',
                            **kwargs) -> str:
    """

    :param iss: The issuer of the signed JSON Web Token
    :param sub: The subject which the metadata describes
    :param keys: The issuer's private signing keys. The first one is used.
    :param jwks: The public keys of the subject. Defaults to the public part of keys
        which is what a self-signed statement carries.
    :param metadata: The entity's metadata organised as a dictionary with the
        entity type as key
    :param metadata_policy: Metadata policy
    :param metadata_policy_crit: Policy operators that must be understood
    :param authority_hints: A list of immediate superiors
    :param lifetime: The life time of the signed JWT.
    :param iat: Issued at. Defaults to now.
    :param aud: Possible audience for the JWT
    :return: A signed JSON Web Token
    """
    _iat = utc_time_sans_frac() if iat is None else iat
    msg = {'iss': iss, 'sub': sub, 'iat': _iat, 'exp': _iat + lifetime}

    if jwks is None:
        jwks = {"keys": [k.serialize(private=False) for k in keys]}
    msg['jwks'] = jwks

    if metadata:
        msg['metadata'] = metadata

    if metadata_policy:
        msg['metadata_policy'] = metadata_policy

    if metadata_policy_crit:
        msg['metadata_policy_crit'] = metadata_policy_crit

    if authority_hints:
        msg['authority_hints'] = authority_hints

    if aud:
        msg['aud'] = aud

    if kwargs:
        msg.update(kwargs)

    _key = keys[0]
    _signer = JWS(json.dumps(msg), alg=KEY_TYPE2ALG[_key.kty], typ=ENTITY_STATEMENT_TYPE)
    return _signer.sign_compact([_key])
