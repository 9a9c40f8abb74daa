import bcrypt

# bcrypt ignores everything past 72 bytes; newer releases refuse longer input
BCRYPT_MAX_BYTES = 72


class BcryptHasher:
    """Password hashing backed by bcrypt."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Takes a plain text password and returns the bcrypt hash"""
        password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password_bytes, salt)
        return hashed.decode('utf-8')

    def compare(self, password: str, hashed_password: str) -> bool:
        """Checks if the plain password matches the hashed password"""
        password_bytes = password.encode('utf-8')[:BCRYPT_MAX_BYTES]
        hashed_bytes = hashed_password.encode('utf-8')
        try:
            return bcrypt.checkpw(password_bytes, hashed_bytes)
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
