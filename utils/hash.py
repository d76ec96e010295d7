from passlib.context import CryptContext
from utils.logger import get_logger
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

logger = get_logger("HASH_UTILS")

def _truncate(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    password_str = str(password)
    encoded = password_str.encode("utf-8")
    if len(encoded) > 72:
        password_str = encoded[:72].decode("utf-8", errors="ignore")
    return password_str

def hash_password(password: str) -> str:
    logger.debug("Password received for hashing")
    return pwd_context.hash(_truncate(password))

def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(_truncate(plain_password), hashed_password)
