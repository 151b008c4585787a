"""Patient name and e-mail generator for synthetic bookings."""

import random

FIRST_NAMES = [
    "Alice",
    "Antoine",
    "Camille",
    "Chloe",
    "Daniel",
    "Elena",
    "Emma",
    "Fatima",
    "Gabriel",
    "Hugo",
    "Ines",
    "James",
    "Julia",
    "Karim",
    "Laura",
    "Leo",
    "Lucas",
    "Manon",
    "Maria",
    "Mohamed",
    "Nina",
    "Noah",
    "Olivia",
    "Paul",
    "Priya",
    "Rafael",
    "Sarah",
    "Sofia",
    "Thomas",
    "Yuki",
]

LAST_NAMES = [
    "Bernard",
    "Chen",
    "Dubois",
    "Fischer",
    "Garcia",
    "Haddad",
    "Johnson",
    "Kowalski",
    "Laurent",
    "Lefebvre",
    "Martin",
    "Moreau",
    "Nguyen",
    "O'Brien",
    "Patel",
    "Petit",
    "Rossi",
    "Santos",
    "Smith",
    "Tanaka",
    "Van der Berg",
    "Williams",
]

EMAIL_DOMAINS = ["gmail.com", "yahoo.com", "hotmail.com", "outlook.com", "example.org"]


def random_name(rng: random.Random) -> tuple[str, str]:
    return rng.choice(FIRST_NAMES), rng.choice(LAST_NAMES)


def _mailbox_part(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


def random_email(first_name: str, last_name: str, rng: random.Random) -> str:
    """Lower-case address such as ``sofia.nguyen@outlook.com`` or ``snguyen42@gmail.com``."""
    first, last = _mailbox_part(first_name), _mailbox_part(last_name)
    mailboxes = (
        f"{first}.{last}",
        f"{first[:1]}{last}{rng.randint(1, 99)}",
        f"{first}_{last}",
        f"{last}.{first}{rng.randint(1990, 2005)}",
    )
    return f"{rng.choice(mailboxes)}@{rng.choice(EMAIL_DOMAINS)}"
