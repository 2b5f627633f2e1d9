__all__ = [
    "EXAMPLE_URL",
    "EXAMPLE_PNG_URL",
    "EXAMPLE_ZIP_URL",
    "EXAMPLE_DATA",
    "EXAMPLE_FILE_LENGTH",
    "EXAMPLE_FILES",
    "make_resource",
]

data_dir_URL = "https://example.com/data/"

EXAMPLE_URL = f"{data_dir_URL}example_text_file.txt"
EXAMPLE_PNG_URL = f"{data_dir_URL}red_square.png"
EXAMPLE_ZIP_URL = f"{data_dir_URL}example_text_file.txt.zip"


def make_resource(size: int) -> bytes:
    "Deterministic bytes in which (nearly) every position has a distinct neighbourhood"
    return bytes((i * 7 + i // 256) % 256 for i in range(size))


EXAMPLE_DATA = b"P\xc3\xa1ss! hello"
EXAMPLE_FILE_LENGTH = len(EXAMPLE_DATA)

EXAMPLE_FILES = {
    EXAMPLE_URL: EXAMPLE_DATA,
    EXAMPLE_PNG_URL: b"\x89PNG\r\n\x1a\n" + make_resource(120),
    EXAMPLE_ZIP_URL: b"PK\x03\x04" + make_resource(300),
}
