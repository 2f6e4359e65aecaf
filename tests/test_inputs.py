import pytest

from ledgerlens.analysis.inputs import InputKind, classify_input


TX_HASH = "0x" + "ab" * 32
ADDRESS = "0x" + "Cd" * 20


@pytest.mark.parametrize(
    "text, kind, normalized",
    [
        (TX_HASH, InputKind.TRANSACTION, TX_HASH),
        (TX_HASH.upper().replace("0X", "0x"), InputKind.TRANSACTION, TX_HASH),
        (ADDRESS, InputKind.ADDRESS, ADDRESS.lower()),
        ("12345678", InputKind.BLOCK, "12345678"),
        ("0x1a", InputKind.BLOCK, "26"),
        ("  42  ", InputKind.BLOCK, "42"),
    ],
)
def test_classify_valid_inputs(text, kind, normalized):
    result = classify_input(text)
    assert result.kind is kind
    assert result.normalized == normalized
    assert result.valid


@pytest.mark.parametrize(
    "text",
    [
        "",
        "hello",
        "0x",
        "0x" + "ab" * 31,  # 62 hex chars: too long for a block, too short for a hash
        "0x" + "zz" * 20,
        "-5",
        "12.5",
    ],
)
def test_classify_invalid_inputs(text):
    result = classify_input(text)
    assert result.kind is InputKind.INVALID
    assert not result.valid


def test_hex_block_length_limit():
    assert classify_input("0x" + "f" * 10).kind is InputKind.BLOCK
    assert classify_input("0x" + "f" * 11).kind is InputKind.INVALID


def mutate(text: str, position: int, char: str = "g") -> str:
    return text[:position] + char + text[position + 1:]


@pytest.mark.parametrize("position", [2, 3, 17, 40, 65])
def test_non_hex_character_in_hash_is_invalid(position):
    assert classify_input(mutate(TX_HASH, position)).kind is InputKind.INVALID


@pytest.mark.parametrize("position", [2, 9, 22, 41])
def test_non_hex_character_in_address_is_invalid(position):
    assert classify_input(mutate(ADDRESS, position)).kind is InputKind.INVALID


@pytest.mark.parametrize("char", ["g", "x", "-", " "])
def test_any_non_hex_character_breaks_a_hash(char):
    assert classify_input(mutate(TX_HASH, 30, char)).kind is InputKind.INVALID
