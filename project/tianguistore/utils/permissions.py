# tianguistore/utils/permissions.py

"""
Role based access policy.

A role grants a set of actions per resource, e.g. "pedidos" -> {"leer", "crear"}.
Services ask the policy before doing anything; routes only resolve the user.
"""

from tianguistore.utils.errors import AuthorizationError

ROLE_PERMISSIONS: dict[str, dict[str, frozenset[str]]] = {
    "admin": {
        "pedidos": frozenset({"leer", "crear", "actualizar", "cancelar", "eliminar"}),
        "productos": frozenset({"leer", "crear", "actualizar", "eliminar"}),
        "usuarios": frozenset({"leer", "crear", "actualizar", "eliminar"}),
        "carrito": frozenset({"leer", "actualizar"}),
    },
    "soporte": {
        "pedidos": frozenset({"leer", "actualizar", "cancelar"}),
        "productos": frozenset({"leer"}),
        "usuarios": frozenset({"leer"}),
    },
    "cliente": {
        "pedidos": frozenset({"crear", "cancelar"}),
        "productos": frozenset({"leer"}),
        "carrito": frozenset({"leer", "actualizar"}),
    },
}


class Policy:
    def __init__(self, roles: dict[str, dict[str, frozenset[str]]] | None = None):
        self.roles = roles if roles is not None else ROLE_PERMISSIONS

    def allows(self, user, resource: str, action: str) -> bool:
        if user is None or not getattr(user, "activo", False):
            return False
        return action in self.roles.get(user.rol, {}).get(resource, ())

    def require(self, user, resource: str, action: str) -> None:
        if not self.allows(user, resource, action):
            raise AuthorizationError(f"Permiso requerido: {resource}.{action}")

    def owns_or_allows(self, user, owner_id: int, resource: str, action: str) -> bool:
        """True for the owner of a record, or for anyone holding resource.action."""
        if user is None or not getattr(user, "activo", False):
            return False
        return user.usuario_id == owner_id or self.allows(user, resource, action)

    def permissions_for(self, user) -> dict[str, dict[str, bool]]:
        """Serialisable map handed to the client, e.g. {"pedidos": {"leer": True}}."""
        granted = self.roles.get(user.rol, {})
        return {resource: {action: True for action in sorted(actions)}
                for resource, actions in granted.items()}


policy = Policy()
