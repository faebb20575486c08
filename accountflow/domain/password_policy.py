"""Default password policy."""

from .ports import PasswordVerdict

MIN_LENGTH = 8
MIN_DISTINCT_CHARACTERS = 4

_COMMON_PASSWORDS = frozenset(
    {
        "password",
        "password1",
        "password123",
        "passw0rd",
        "12345678",
        "123456789",
        "1234567890",
        "11111111",
        "87654321",
        "iloveyou",
        "sunshine",
        "princess",
        "football",
        "baseball",
        "superman",
        "trustno1",
        "letmein1",
        "welcome1",
        "abc12345",
        "qwerty123",
        "monkey123",
        "dragon123",
        "starwars",
        "whatever",
        "computer",
        "internet",
        "michelle",
        "jennifer",
        "aardvarks",
    }
)

_SEQUENCES = (
    "abcdefghijklmnopqrstuvwxyz",
    "0123456789",
    "qwertyuiop",
    "qwertzuiop",
    "asdfghjkl",
    "zxcvbnm",
    "yxcvbnm",
    "azertyuiop",
)


def _is_sequence(password: str) -> bool:
    lowered = password.lower()
    for sequence in _SEQUENCES:
        if lowered in sequence or lowered in sequence[::-1]:
            return True
    return False


class ReasonablePasswordPolicy:
    """
    Implements PasswordPolicy protocol.

    Rejects passwords that are short, contain an application or user name,
    are commonly used, consist of very few distinct characters, or follow a
    keyboard or alphabet sequence.
    """

    def assess(self, password: str, excluded_words: list[str]) -> PasswordVerdict:
        if len(password) < MIN_LENGTH:
            return PasswordVerdict.TOO_SHORT

        lowered = password.lower()
        for word in excluded_words:
            # For emails, the local part is the name a user is likely to reuse
            name = word.split("@", 1)[0] if "@" in word and not word.startswith("@") else word
            for candidate in {word.lower(), name.lower()}:
                if len(candidate) >= 3 and candidate in lowered:
                    return PasswordVerdict.IS_A_NAME

        if lowered in _COMMON_PASSWORDS:
            return PasswordVerdict.TOO_COMMON

        if len(set(password)) < MIN_DISTINCT_CHARACTERS:
            return PasswordVerdict.REPETITIVE

        if _is_sequence(password):
            return PasswordVerdict.SEQUENCE

        return PasswordVerdict.OK
