from slowapi import Limiter
from slowapi.util import get_remote_address

# Limiteur partagé : enregistré sur app.state dans main.py, appliqué aux routes EDI
limiter = Limiter(key_func=get_remote_address)
