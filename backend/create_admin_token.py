import sys
from datetime import timedelta

from core.security import create_access_token
from models.common import UserRole


def mint(user_id: str, role: str, hours: int) -> str:
    return create_access_token(user_id, role, expires_delta=timedelta(hours=hours))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print("Usage : python create_admin_token.py <user_id> [role] [durée_heures]")
        print(f"Roles possibles : {', '.join(r.value for r in UserRole)}")
        print("Exemple : python create_admin_token.py ops_amine admin 8")
        sys.exit(1)

    user_arg = sys.argv[1]
    role_arg = sys.argv[2] if len(sys.argv) > 2 else UserRole.ADMIN.value
    hours_arg = int(sys.argv[3]) if len(sys.argv) > 3 else 8

    if role_arg not in [r.value for r in UserRole]:
        print(f"❌ Rôle inconnu : {role_arg}")
        sys.exit(1)

    token = mint(user_arg, role_arg, hours_arg)
    print(f"✅ Token {role_arg} pour {user_arg} (valable {hours_arg} h) :")
    print(token)
