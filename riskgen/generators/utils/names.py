"""Name and mail-domain pools for synthetic identity profiles."""

FULL_NAMES = [
    "Amelia Hart",
    "Benjamin Ortiz",
    "Chloe Nakamura",
    "Daniel Okafor",
    "Elena Petrova",
    "Felix Andersson",
    "Grace Liu",
    "Hugo Marchand",
    "Isabel Ferreira",
    "Jonas Becker",
    "Kara Mensah",
    "Liam O'Connell",
    "Maya Patel",
    "Noah Kowalski",
    "Olivia Brennan",
    "Pablo Herrera",
    "Quinn Delaney",
    "Rosa Lindqvist",
    "Samuel Adeyemi",
    "Tara Whitfield",
    "Umar Siddiqui",
    "Vera Novak",
    "William Chen",
    "Ximena Rojas",
    "Yusuf Demir",
    "Zoe Laurent",
    "Aaron Fitzgerald",
    "Bianca Rossi",
    "Caleb Morgan",
    "Diana Svensson",
]

MAIL_DOMAINS = [
    "gmail.com",
    "yahoo.com",
    "outlook.com",
    "hotmail.com",
    "icloud.com",
    "proton.me",
    "aol.com",
    "fastmail.com",
]


def email_for(full_name: str, domain: str) -> str:
    """Mail address derived from a display name, e.g. ``Grace.Liu@gmail.com``."""
    return f"{full_name.replace(' ', '.')}@{domain}"
