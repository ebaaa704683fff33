"""Published signatures from other implementations must verify unchanged."""

import pytest

from ergotree.sigma_boolean import Cand, Cor, Cthreshold, ProveDhTuple
from primitives.group import GROUP_ELEMENT_SIZE, GroupElement
from protocol.private_input import DlogProverInput
from protocol.verifier import verify
from tests.conftest import MESSAGE, SK1, SK2, SK3

SK_A = 416167686186183758173232992934554728075978573242452195968805863126437865059

DLOG_SIG = "bcb866ba434d5c77869ddcbc3f09ddd62dd2d2539bf99076674d1ae0c32338ea95581fdc18a3b66789904938ac641eba1a66d234070207a2"

DHT_POINTS = (
    "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    "0280c66feee88d56e47bf3f47c4109d9218c60c373a472a0d9537507c7ee828c48"
    "02a96f19e97df31606183c1719400682d1d40b1ce50c9a1ed1b19845e2b1b551bf"
    "0255ac02191cb229891fb1b674ea9df7fc8426350131d821fc4a53f29c3b1cb21a"
)
DHT_SIG = "eba93a69b28cfdea261e9ea8914fca9a0b3868d50ce68c94f32e875730f8ca361bd3783c5d3e25802e54f49bd4fb9fafe51f4e8aafbf9815"

AND_SIG = (
    "9b2ebb226be42df67817e9c56541de061997c3ea84e7e72dbb69edb7318d7bb525f9c16ccb1adc0ede4700a046d0a4ab"
    "1e239245460c1ba45e5637f7a2d4cc4cc460e5895125be73a2ca16091db2dcf51d3028043c2b9340"
)
OR_SIG = (
    "ec94d2d5ef0e1e638237f53fd883c339f9771941f70020742a7dc85130aaee535c61321aa1e1367befb500256567b3e6"
    "f9c7a3720baa75ba6056305d7595748a93f23f9fc0eb9c1aaabc24acc4197030834d76d3c95ede60c5b59b4b306cd787"
    "d010e8217f34677d046646778877c669"
)

OR_DHT_POINTS = (
    "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
    "0214487635ebffa60b13a166bd0721c5f0ab603fc74168d7764d7ec5ef2107f5d4"
    "0334c5b7efa5a4a22b83d102d2e6521eaa660fa911c5a213af63c8460f2327513b"
    "026a0be2a277291d42daad3830cb16a4ef20e4f1f7c36384f3fee065f0f143a355"
)
OR_DHT_SIG = (
    "a80daebdcd57874296f49fd9910ddaefbf517ca076b6e16b97678e96a20239978836e7ec5b795cf3a55616d394f07c00"
    "4f85e0d3e71880d4734b57ea874c7eba724e8887280f1affadaad962ee916b39207af2d2ab2a69a2e6f4d652f7389cc4"
    "f582bbe6d7937c59aa64cf2965a8b36a"
)

AND_OR_SIG = (
    "397e005d85c161990d0e44853fbf14951ff76e393fe1939bb48f68e852cd5af028f6c7eaaed587f6d5435891a564d8f9"
    "a77288773ce5b526a670ab0278aa4278891db53a9842df6fba69f95f6d55cfe77dd7b4bdccc1a3378ac4524b51598cb8"
    "13258f64c94e98c3ef891a6eb8cbfd2e527a9038ca50b5bb50058de55a859a169628e6ae5ba4cb0332c694e450782d6f"
)
OR_AND_SIG = (
    "a58b251be319a9656c21876b1136a59f42b18835dec6076c92f7a925ba28d2030218c177ab07563003eff5250cfafeb6"
    "31ef610f4d710ab8e821bf632203adf23f4376580eaa17ddb36c0138f73a88551f45d92cde2b66dfbb5906c02e4d4810"
    "6ff08be4a2fc29ec242f495468692f9ddeeb029dc5d8f38e2649cf09c44b67cbcfb3de4202026fb84d23ce2b4ff0f69b"
)
THRESHOLD_SIG = (
    "0b6bf9bc42c7b509ab56c76318c0891b2c8d44ef5fafb1379cc6b72b89c53cd43f8ef10158ce08646301d09b450ea83a"
    "1cdbbfc3dc7438ece4bbe934919069c50ec5857209b0dbf120b325c88667bc84580720ff4b3c371ec752bc6874c933f7"
    "fa53fae411e65ae07b647d365caac8c6744276c04c0240dd55e1f62c0e17a093dd91493c68104b1e01a4069017668d3f"
)


def _pk(sk: int):
    return DlogProverInput(sk).public_image


def _dh_tuple(points_hex: str) -> ProveDhTuple:
    data = bytes.fromhex(points_hex)
    chunks = [data[i:i + GROUP_ELEMENT_SIZE] for i in range(0, len(data), GROUP_ELEMENT_SIZE)]
    return ProveDhTuple(*(GroupElement.from_bytes(c) for c in chunks))


VECTORS = [
    pytest.param(lambda: _pk(SK1), DLOG_SIG, id="dlog"),
    pytest.param(lambda: _dh_tuple(DHT_POINTS), DHT_SIG, id="dht"),
    pytest.param(lambda: Cand((_pk(SK1), _pk(SK2))), AND_SIG, id="and"),
    pytest.param(lambda: Cor((_pk(SK1), _pk(SK2))), OR_SIG, id="or"),
    pytest.param(lambda: Cor((_pk(SK1), _dh_tuple(OR_DHT_POINTS))), OR_DHT_SIG, id="or-dht"),
    pytest.param(lambda: Cand((_pk(SK1), Cor((_pk(SK2), _pk(SK3))))), AND_OR_SIG, id="and-or"),
    pytest.param(lambda: Cor((_pk(SK1), Cand((_pk(SK2), _pk(SK3))))), OR_AND_SIG, id="or-and"),
    pytest.param(lambda: Cthreshold(2, (_pk(SK_A), _pk(SK3), _pk(SK2))), THRESHOLD_SIG, id="threshold"),
]


class TestSigningVectors:
    """Tests against fixed (proposition, message, signature) triples."""

    @pytest.mark.parametrize("make_prop, sig", VECTORS)
    def test_verifies(self, make_prop, sig: str) -> None:
        """The published signature verifies over the published message."""
        assert verify(make_prop(), bytes.fromhex(sig), MESSAGE)

    @pytest.mark.parametrize("make_prop, sig", VECTORS)
    def test_other_message(self, make_prop, sig: str) -> None:
        """The same signature does not verify over a different message."""
        assert not verify(make_prop(), bytes.fromhex(sig), MESSAGE[::-1])

    @pytest.mark.parametrize("make_prop, sig", VECTORS)
    def test_tampered(self, make_prop, sig: str) -> None:
        """Flipping a bit of the last response invalidates the signature."""
        data = bytearray.fromhex(sig)
        data[-1] ^= 0x01
        assert not verify(make_prop(), bytes(data), MESSAGE)

    def test_p2pk_key(self) -> None:
        """The first key matches its published encoding."""
        assert _pk(SK1).h.to_bytes().hex() == "03cb0d49e4eae7e57059a3da8ac52626d26fc11330af8fb093fa597d8b93deb7b1"
