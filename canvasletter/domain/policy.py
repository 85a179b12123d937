from typing import Any

from canvasletter.domain.entities import AccessRole, Newsletter, ShareRole, User
from canvasletter.rules.models import Rules

# Permission strings checked by the core.
NEWSLETTER_READ = "newsletter:read"
NEWSLETTER_EDIT_CONTENT = "newsletter:edit_content"
SHARES_MANAGE = "shares:manage"


class AccessPolicy:
    def __init__(self, rules: Rules):
        self.rules = rules

    def check_permission(self, role: AccessRole, action: str) -> bool:
        """
        Check whether an access role grants the action.

        Supports "*" and scoped wildcards ("newsletter:*" matches
        "newsletter:edit_content").
        """
        allowed_actions = self.rules.access.roles.get(role, [])
        if "*" in allowed_actions:
            return True
        if action in allowed_actions:
            return True

        if ":" in action:
            scope = action.split(":")[0]
            if f"{scope}:*" in allowed_actions:
                return True

        return False

    def can_view(self, role: AccessRole) -> bool:
        return self.check_permission(role, NEWSLETTER_READ)

    def can_edit(self, role: AccessRole) -> bool:
        return self.check_permission(role, NEWSLETTER_EDIT_CONTENT)

    def is_owner(self, user_id: Any, newsletter: Newsletter) -> bool:
        return str(newsletter.owner_user_id) == str(user_id)

    def can_manage_shares(self, user: User, newsletter: Newsletter) -> bool:
        # Ownership is proven independently of any share token.
        if user.status != "active":
            return False
        return self.is_owner(user.id, newsletter) and self.check_permission(
            "owner", SHARES_MANAGE
        )

    def allowed_share_roles(self) -> tuple[ShareRole, ...]:
        return tuple(self.rules.access.share_creation_roles)

    def can_create_share_role(self, role: str) -> bool:
        return role in self.rules.access.share_creation_roles
