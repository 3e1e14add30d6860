import copy
from typing import List
from typing import Optional

import responses
from cryptojwt.jwk.ec import new_ec_key

from fedtrust.defaults import ENTITY_STATEMENT_CONTENT_TYPE
from fedtrust.entity_statement.create import create_entity_statement
from fedtrust.entity_statement.fetch import construct_fetch_url
from fedtrust.entity_statement.fetch import construct_well_known_url


class Entity(object):
    """
    A federation entity that can issue its own entity configuration and statements about
    its subordinates.
    """

    def __init__(self,
                 entity_id: str,
                 authority_hints: Optional[List[str]] = None,
                 metadata: Optional[dict] = None):
        self.entity_id = entity_id
        self.key = new_ec_key(crv="P-256", use="sig")
        self.authority_hints = authority_hints or []
        self.metadata = metadata or {}
        self.subordinates = {}

    @property
    def fetch_endpoint(self):
        return f"{self.entity_id}/fetch"

    @property
    def jwks(self):
        return {"keys": [self.key.serialize(private=False)]}

    def add_subordinate(self, entity, metadata_policy: Optional[dict] = None,
                        metadata_policy_crit: Optional[List[str]] = None):
        self.subordinates[entity.entity_id] = {
            "jwks": entity.jwks,
            "metadata_policy": metadata_policy,
            "metadata_policy_crit": metadata_policy_crit
        }

    def entity_configuration(self, **kwargs) -> str:
        _metadata = copy.deepcopy(self.metadata)
        if self.subordinates:
            _fe = _metadata.setdefault("federation_entity", {})
            _fe["federation_fetch_endpoint"] = self.fetch_endpoint
        return create_entity_statement(self.entity_id, self.entity_id, [self.key],
                                       metadata=_metadata,
                                       authority_hints=self.authority_hints, **kwargs)

    def subordinate_statement(self, entity_id: str, **kwargs) -> str:
        _info = self.subordinates[entity_id]
        return create_entity_statement(self.entity_id, entity_id, [self.key],
                                       jwks=_info["jwks"],
                                       metadata_policy=_info["metadata_policy"],
                                       metadata_policy_crit=_info["metadata_policy_crit"],
                                       **kwargs)

    def where_and_what(self) -> dict:
        res = {construct_well_known_url(self.entity_id): self.entity_configuration()}
        for entity_id in self.subordinates.keys():
            res[construct_fetch_url(self.fetch_endpoint, entity_id)] = \
                self.subordinate_statement(entity_id)
        return res


def federation(*entities: Entity) -> dict:
    where_and_what = {}
    for entity in entities:
        where_and_what.update(entity.where_and_what())
    return where_and_what


def publish(rsps: responses.RequestsMock, where_and_what: dict):
    for _url, _jws in where_and_what.items():
        rsps.add("GET", _url, body=_jws,
                 adding_headers={"Content-Type": ENTITY_STATEMENT_CONTENT_TYPE}, status=200)


def requests_mock():
    return responses.RequestsMock(assert_all_requests_are_fired=False)
