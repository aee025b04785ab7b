"""One-way password hashing."""

import bcrypt


class PasswordHasher:
    """bcrypt hashing with a fresh salt per call."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a plain text password.

        Args:
            password: Plain text password

        Returns:
            bcrypt hash, safe to store
        """
        return bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Check a plain text password against a stored hash.

        Args:
            password: Plain text password
            password_hash: Hash produced by ``hash``

        Returns:
            True if the password matches, False otherwise (including for a
            malformed stored hash)
        """
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
