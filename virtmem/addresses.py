from typing import Iterator


def read_addresses(path) -> Iterator[str]:
    """Lazily yield one address token per non-blank line of a text file"""
    # Undecodable bytes stay in the token and are rejected by parse_address
    with open(path, errors="surrogateescape") as f:
        for line in f:
            token = line.strip()
            if token:
                yield token
