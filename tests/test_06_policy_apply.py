import copy

import pytest

from fedtrust.entity.function.policy import MetadataPolicyApplicator
from fedtrust.entity.function.policy import MetadataPolicyResolver
from fedtrust.exception import MissingEssentialParameter
from fedtrust.exception import NotOneOf
from fedtrust.exception import NotSuperset
from fedtrust.exception import PolicyError
from fedtrust.exception import UnsupportedValueType

RP = "openid_relying_party"

POLICY_METADATA = [
    (
        {"foo": {"value": "Y"}},
        {"foo": "X"},
        {"foo": "Y"}
    ),
    (
        {"foo": {"value": "Y"}},
        {},
        {"foo": "Y"}
    ),
    (
        {"foo": {"value": None}},
        {"foo": "X", "bar": "Y"},
        {"bar": "Y"}
    ),
    (
        {"foo": {"add": ["Y"]}},
        {"foo": ["X"]},
        {"foo": ["X", "Y"]}
    ),
    (
        {"foo": {"add": ["X"]}},
        {"foo": ["X"]},
        {"foo": ["X"]}
    ),
    (
        {"foo": {"add": ["Y"]}},
        {},
        {"foo": ["Y"]}
    ),
    (
        {"foo": {"default": "Y"}},
        {"foo": "X"},
        {"foo": "X"}
    ),
    (
        {"foo": {"default": "Y"}},
        {},
        {"foo": "Y"}
    ),
    (
        {"foo": {"one_of": ["X", "Y"]}},
        {"foo": "X"},
        {"foo": "X"}
    ),
    (
        {"foo": {"one_of": ["X", "Y"]}},
        {},
        {}
    ),
    (
        {"foo": {"subset_of": ["X", "Y"]}},
        {"foo": ["X", "Z"]},
        {"foo": ["X"]}
    ),
    (
        {"foo": {"superset_of": ["X"]}},
        {"foo": ["X", "Z"]},
        {"foo": ["X", "Z"]}
    ),
    (
        {"foo": {"superset_of": ["X"]}},
        {},
        {}
    ),
    (
        {"foo": {"essential": True}},
        {"foo": "X"},
        {"foo": "X"}
    ),
    (
        {"foo": {"essential": False}},
        {},
        {}
    ),
    (
        {"foo": {"default": ["X"], "subset_of": ["X", "Y"], "essential": True}},
        {},
        {"foo": ["X"]}
    ),
    (
        {"foo": {"add": ["Y"], "subset_of": ["X", "Y"]}},
        {"foo": ["X", "Z"]},
        {"foo": ["X", "Y"]}
    ),
    (
        {"foo": {"value": "X", "essential": True}},
        {},
        {"foo": "X"}
    ),
]


@pytest.mark.parametrize("policy, metadata, result", POLICY_METADATA)
def test_apply_policy(policy, metadata, result):
    assert MetadataPolicyApplicator()(policy, metadata) == result


@pytest.mark.parametrize("policy, metadata, error", [
    ({"foo": {"one_of": ["X", "Y"]}}, {"foo": "Z"}, NotOneOf),
    ({"foo": {"superset_of": ["X", "Y"]}}, {"foo": ["X", "Z"]}, NotSuperset),
    ({"foo": {"essential": True}}, {}, MissingEssentialParameter),
    ({"foo": {"essential": True}}, {"foo": None}, MissingEssentialParameter),
    ({"foo": {"subset_of": ["X"], "essential": True}}, {"foo": ["Y"]}, MissingEssentialParameter),
    ({"foo": {"add": ["X"]}}, {"foo": "X"}, UnsupportedValueType),
    ({"foo": {"one_of": ["X"]}}, {"foo": ["X"]}, UnsupportedValueType),
])
def test_apply_policy_fails(policy, metadata, error):
    with pytest.raises(error):
        MetadataPolicyApplicator()(policy, metadata)


def test_subset_of_empty_intersection_removes():
    metadata = {"foo": ["Z"], "bar": "B"}
    res = MetadataPolicyApplicator()({"foo": {"subset_of": ["X", "Y"]}}, metadata)
    assert res == {"bar": "B"}


def test_superset_of_does_not_mutate():
    metadata = {"foo": ["X", "Z"]}
    with pytest.raises(NotSuperset):
        MetadataPolicyApplicator()({"foo": {"superset_of": ["X", "Y"]}}, metadata)
    assert metadata == {"foo": ["X", "Z"]}


def test_metadata_not_modified():
    metadata = {"foo": ["X"], "bar": "B"}
    _copy = copy.deepcopy(metadata)
    res = MetadataPolicyApplicator()({"foo": {"add": ["Y"]}, "bar": {"value": None}}, metadata)
    assert res == {"foo": ["X", "Y"]}
    assert metadata == _copy


def test_no_metadata():
    assert MetadataPolicyApplicator()({"foo": {"default": "X"}}, None) == {"foo": "X"}


def test_scope_round_trip():
    metadata = {"scope": "openid profile"}
    policy = {"scope": {"superset_of": ["openid"], "add": ["email"]}}
    res = MetadataPolicyApplicator()(policy, metadata)
    assert res == {"scope": "openid profile email"}


def test_scope_subset_of():
    policy = {"scope": {"subset_of": ["openid", "email"]}}
    applicator = MetadataPolicyApplicator()
    assert applicator(policy, {"scope": "openid profile email"}) == {"scope": "openid email"}
    assert applicator(policy, {"scope": "profile"}) == {}


def test_scope_as_list():
    policy = {"scope": {"add": ["email"]}}
    assert MetadataPolicyApplicator()(policy, {"scope": ["openid"]}) == {
        "scope": ["openid", "email"]}


def test_scope_value():
    policy = {"scope": {"value": "openid"}}
    assert MetadataPolicyApplicator()(policy, {"scope": "openid email"}) == {"scope": "openid"}


def test_scope_value_list_keeps_string():
    policy = {"scope": {"value": ["openid", "email"]}}
    applicator = MetadataPolicyApplicator()
    assert applicator(policy, {"scope": "openid profile"}) == {"scope": "openid email"}
    assert applicator(policy, {"scope": ["openid", "profile"]}) == {"scope": ["openid", "email"]}


def test_scope_value_with_essential_keeps_string():
    policy = {"scope": {"value": ["openid"], "essential": True}}
    assert MetadataPolicyApplicator()(policy, {"scope": "profile"}) == {"scope": "openid"}


def test_scope_superset_of_fails():
    policy = {"scope": {"superset_of": ["openid", "email"]}}
    with pytest.raises(NotSuperset):
        MetadataPolicyApplicator()(policy, {"scope": "openid profile"})


METADATA = {
    "redirect_uris": ["https://rp.example.org/cb"],
    "response_types": ["code", "code id_token"],
    "token_endpoint_auth_method": "private_key_jwt",
    "contacts": ["rp_admins@rp.example.org"],
    "scope": "openid profile"
}

FEDERATION_POLICY = {
    RP: {
        "contacts": {"add": ["helpdesk@federation.example.org"]},
        "response_types": {"subset_of": ["code", "code id_token", "code token"]},
        "token_endpoint_auth_method": {"one_of": ["private_key_jwt", "self_signed_tls_client_auth"],
                                       "essential": True},
        "id_token_signed_response_alg": {"default": "ES256"}
    }
}

ORGANIZATION_POLICY = {
    RP: {
        "contacts": {"add": ["helpdesk@org.example.org"]},
        "response_types": {"subset_of": ["code"]},
        "scope": {"add": ["email"]}
    }
}


def test_resolve_and_apply():
    resolved = MetadataPolicyResolver()(RP, [FEDERATION_POLICY, ORGANIZATION_POLICY])
    res = MetadataPolicyApplicator()(resolved, METADATA)
    assert res == {
        "redirect_uris": ["https://rp.example.org/cb"],
        "response_types": ["code"],
        "token_endpoint_auth_method": "private_key_jwt",
        "contacts": ["rp_admins@rp.example.org", "helpdesk@federation.example.org",
                     "helpdesk@org.example.org"],
        "id_token_signed_response_alg": "ES256",
        "scope": "openid profile email"
    }


def test_resolve_and_apply_fails():
    resolved = MetadataPolicyResolver()(RP, [FEDERATION_POLICY])
    _metadata = copy.deepcopy(METADATA)
    _metadata["token_endpoint_auth_method"] = "client_secret_basic"
    with pytest.raises(PolicyError):
        MetadataPolicyApplicator()(resolved, _metadata)
