import logging
from typing import List
from typing import Optional

from cryptojwt import as_unicode
from cryptojwt import KeyBundle
from cryptojwt.exception import JWKESTException
from cryptojwt.jws.jws import factory
from idpyoidc.exception import MessageException

from fedtrust import message
from fedtrust.defaults import ENTITY_STATEMENT_TYPE
from fedtrust.exception import EntityStatementError
from fedtrust.exception import SignatureFailure

logger = logging.getLogger(__name__)


class EntityStatement(object):
    """
    A parsed, not yet trusted, Entity Statement. Wraps the signed JWT and gives access
    to the claims a trust chain needs.
    """

    def __init__(self, token: str):
        self.token = as_unicode(token)
        self._jws = factory(self.token)
        if not self._jws:
            raise EntityStatementError("Entity statement is not a signed JWT")

        _typ = self._jws.jwt.headers.get("typ")
        if _typ != ENTITY_STATEMENT_TYPE:
            raise EntityStatementError(f"Not an entity statement, JWT type is '{_typ}'")

        try:
            _payload = self._jws.jwt.payload()
            if not isinstance(_payload, dict):
                raise ValueError("Payload is not a JSON object")
            # Message silently drops empty lists
            for claim in ["authority_hints", "crit"]:
                if _payload.get(claim) == []:
                    raise ValueError(f"Empty list not allowed for '{claim}'")
            self.payload = message.EntityStatement(**_payload)
            self.payload.verify()
        except (MessageException, ValueError) as err:
            raise EntityStatementError(f"Invalid entity statement: {err}") from err

    def __repr__(self):
        return f"EntityStatement(iss={self.get_issuer()!r}, sub={self.get_subject()!r})"

    def is_configuration(self) -> bool:
        return self.get_issuer() == self.get_subject()

    def get_issuer(self) -> str:
        return self.payload["iss"]

    def get_subject(self) -> str:
        return self.payload["sub"]

    def get_expiration_time(self) -> int:
        return self.payload["exp"]

    def get_authority_hints(self) -> Optional[List[str]]:
        return self.payload.get("authority_hints")

    def get_metadata(self, entity_type: str) -> Optional[dict]:
        return self.payload.get("metadata", {}).get(entity_type)

    def get_metadata_policy_raw(self) -> dict:
        return self.payload.get("metadata_policy", {})

    def get_metadata_policy(self, entity_type: str) -> Optional[dict]:
        return self.get_metadata_policy_raw().get(entity_type)

    def get_metadata_policy_crit(self) -> List[str]:
        return [str(op) for op in self.payload.get("metadata_policy_crit", [])]

    def get_jwks(self) -> dict:
        return self.payload.get("jwks", {})

    def get_federation_fetch_endpoint(self) -> Optional[str]:
        _fe = self.get_metadata("federation_entity") or {}
        return _fe.get("federation_fetch_endpoint")

    def verify_with_key_set(self, jwks: Optional[dict] = None):
        """
        Verify the signature of the statement.

        :param jwks: The keys to use. If not given the keys in the statement itself are used.
        :return: The verified payload
        """
        if jwks is None:
            jwks = self.get_jwks()

        if not jwks or not jwks.get("keys"):
            raise SignatureFailure(f"No keys to verify statement issued by '{self.get_issuer()}'")

        _kb = KeyBundle(keys=jwks["keys"])
        try:
            res = self._jws.verify_compact(self.token, keys=_kb.keys())
        except JWKESTException as err:
            raise SignatureFailure(
                f"Could not verify statement issued by '{self.get_issuer()}': {err}") from err

        if not res:
            raise SignatureFailure(f"Could not verify statement issued by '{self.get_issuer()}'")
        return res


def verify_self_signed_signature(token: str) -> EntityStatement:
    """
    Verify signature using only keys in the entity statement.
    Will raise exception if signature verification fails.

    :param token: Signed JWT
    :return: EntityStatement instance
    """
    _statement = EntityStatement(token)
    if not _statement.is_configuration():
        raise EntityStatementError("Not a self-signed entity statement")
    _statement.verify_with_key_set()
    return _statement
