"""Source-IP pools grouped by network operator.

Clean pools back the stable per-profile IP. The bad-actor pool (Tor exits and
open proxies) is only used for per-transaction substitution.
"""

IP_POOLS: dict[str, list[str]] = {
    "ips_Amazon": [
        "3.80.12.44",
        "18.204.77.130",
        "34.229.5.201",
        "52.54.190.17",
        "54.164.88.9",
    ],
    "ips_Apple": [
        "17.253.144.10",
        "17.142.160.59",
        "17.178.96.59",
        "17.172.224.47",
    ],
    "ips_Cloudflare": [
        "104.16.132.229",
        "104.21.48.12",
        "172.67.181.91",
        "188.114.97.3",
    ],
    "ips_Comcast": [
        "24.5.112.63",
        "67.180.14.201",
        "73.92.180.44",
        "98.207.33.150",
        "76.102.8.77",
    ],
    "ips_Zscaler": [
        "165.225.8.31",
        "136.226.64.18",
        "147.161.128.90",
    ],
}

CLEAN_POOL_FILES = ("ips_Apple", "ips_Amazon", "ips_Cloudflare", "ips_Comcast", "ips_Zscaler")

BAD_ACTOR_IPS = [
    "185.220.101.34",
    "185.220.100.252",
    "199.249.230.87",
    "45.153.160.2",
    "109.70.100.24",
    "51.15.43.205",
    "193.189.100.195",
    "23.129.64.130",
]


def clean_ips() -> list[str]:
    ips: list[str] = []
    for name in CLEAN_POOL_FILES:
        ips.extend(IP_POOLS[name])
    return ips
