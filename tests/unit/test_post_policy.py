from uuid import uuid4

import pytest

from quillpress.domain.entities import Identity, Post
from quillpress.domain.errors import AuthorizationError
from quillpress.domain.policy import PolicyEngine
from quillpress.rules.models import RbacRules


@pytest.fixture
def engine(policy):
    return policy


def make_post(author_id):
    return Post(author_id=author_id, title="T", slug="t", body="b")


def test_anonymous_has_no_permissions(engine):
    assert engine.check_permission(None, "posts:create") is False
    assert engine.is_admin(None) is False


def test_admin_scoped_wildcard(engine, admin):
    assert engine.is_admin(admin)
    assert engine.check_permission(admin, "posts:restore") is True
    assert engine.check_permission(admin, "posts:edit", make_post(uuid4())) is True
    # "posts:*" does not cover other scopes
    assert engine.check_permission(admin, "users:delete") is False


def test_author_own_grants(engine, author, other_author):
    mine = make_post(author.id)
    theirs = make_post(other_author.id)

    assert engine.check_permission(author, "posts:create") is True
    assert engine.check_permission(author, "posts:edit", mine) is True
    assert engine.check_permission(author, "posts:edit", theirs) is False
    # Own-grants need a resource to compare against
    assert engine.check_permission(author, "posts:edit") is False
    assert engine.check_permission(author, "posts:restore", mine) is False


def test_unknown_role_denied(engine):
    stranger = Identity(id=uuid4(), role="visitor")
    assert engine.check_permission(stranger, "posts:create") is False


def test_global_wildcard():
    engine = PolicyEngine(RbacRules(admin_roles=[], roles={"owner": ["*"]}))
    owner = Identity(id=uuid4(), role="owner")
    assert engine.check_permission(owner, "anything:really") is True
    assert engine.is_admin(owner) is False


def test_require_raises(engine, author, other_author):
    with pytest.raises(AuthorizationError):
        engine.require(author, "posts:delete", make_post(other_author.id))
    engine.require(author, "posts:delete", make_post(author.id))
