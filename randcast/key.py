from randcast.curve import g1_mul_generator, g1_to_hex, random_scalar, scalar_from_hex, scalar_to_hex
from randcast.custom_types import HexStr


class KeyPair:
    def __init__(self, private_key: HexStr):
        self._private_key = private_key
        self._scalar = scalar_from_hex(private_key)
        if self._scalar == 0:
            raise ValueError("Private key must not be zero")
        self._public_key: HexStr | None = None

    @classmethod
    def generate(cls) -> "KeyPair":
        return cls(scalar_to_hex(random_scalar()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KeyPair):
            return False
        return self._scalar == other._scalar

    @property
    def private_scalar(self) -> int:
        return self._scalar

    @property
    def public_key(self) -> HexStr:
        if self._public_key is None:
            self._public_key = g1_to_hex(g1_mul_generator(self._scalar))
        return self._public_key
