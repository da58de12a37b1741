from quillpress.domain.entities import Identity, Post
from quillpress.domain.errors import AuthorizationError
from quillpress.rules.models import RbacRules


class PolicyEngine:
    def __init__(self, rules: RbacRules):
        self.rules = rules

    def is_admin(self, identity: Identity | None) -> bool:
        return identity is not None and identity.role in self.rules.admin_roles

    def check_permission(
        self,
        identity: Identity | None,
        action: str,
        resource: Post | None = None,
    ) -> bool:
        """
        Check if the identity is allowed to perform the action on the resource.

        Order of precedence:
        1. Role grants the action (exact, "*" or scoped wildcard "posts:*")
        2. Role grants "<action>_own" and the identity authored the resource
        """
        if identity is None:
            return False

        allowed_actions = self.rules.roles.get(identity.role, [])
        if "*" in allowed_actions or action in allowed_actions:
            return True

        # Check for scoped wildcards (e.g. "posts:*" matches "posts:edit")
        if ":" in action:
            scope = action.split(":")[0]
            if f"{scope}:*" in allowed_actions:
                return True

        if resource is not None and f"{action}_own" in allowed_actions:
            return str(resource.author_id) == str(identity.id)

        return False

    def require(
        self,
        identity: Identity | None,
        action: str,
        resource: Post | None = None,
    ) -> None:
        if not self.check_permission(identity, action, resource):
            raise AuthorizationError("Not allowed to perform this action")
