"""Tests for naming-convention sibling lookup."""

import pytest

from apitag_analyzer.resolution.naming import NamingConvention, base_name, candidate_packages, sibling_names

from factories import CONTROLLER, SERVICE, SERVICE_IMPL, SnapshotBuilder


@pytest.mark.parametrize(
    "name, expected",
    [
        ("AccountController", "Account"),
        ("AccountServiceImpl", "Account"),
        ("AccountService", "Account"),
        ("AccountRepository", None),
        (None, None),
    ],
)
def test_base_name(name, expected):
    assert base_name(name) == expected


def test_sibling_names():
    assert sibling_names("AccountService") == ["AccountController", "AccountServiceImpl"]
    assert sibling_names("Account") == []


class TestCandidatePackages:
    def test_controller_package(self):
        assert candidate_packages("com.acme.controller.") == [
            "com.acme.controller.",
            "com.acme.service.",
            "com.acme.service.impl.",
            "com.acme.controller.impl.",
        ]

    def test_service_impl_package(self):
        assert candidate_packages("com.acme.service.impl.")[:3] == [
            "com.acme.service.impl.",
            "com.acme.service.",
            "com.acme.controller.",
        ]

    def test_service_package(self):
        assert candidate_packages("com.acme.service.") == [
            "com.acme.service.",
            "com.acme.service.impl.",
            "com.acme.controller.",
        ]


class TestNamingConvention:
    def test_find_siblings_across_packages(self, account_model):
        naming = NamingConvention(account_model)
        siblings = naming.find_siblings(account_model.get_symbol(SERVICE))
        assert [s.fqn for s in siblings] == [SERVICE_IMPL, CONTROLLER]

    def test_find_siblings_by_simple_name_anywhere(self, load_snapshot):
        builder = SnapshotBuilder()
        builder.add_type("com.acme.api.OrderController")
        builder.add_type("com.acme.biz.OrderService", interface=True)
        model = load_snapshot(builder.build())

        siblings = NamingConvention(model).find_siblings(model.get_symbol("com.acme.api.OrderController"))
        assert [s.fqn for s in siblings] == ["com.acme.biz.OrderService"]

    def test_find_controllers_for(self, account_model):
        naming = NamingConvention(account_model)
        assert [c.fqn for c in naming.find_controllers_for(account_model.get_symbol(SERVICE_IMPL))] == [CONTROLLER]
        assert naming.find_controllers_for(account_model.get_symbol(CONTROLLER)) == []
