import pytest

from randcast.curve import curve_order, g1_to_hex, scalar_to_hex
from randcast.custom_types import Node, PartialSignature, Share, eval_point
from randcast.exceptions import InsufficientPartialSignaturesError, MalformedShareError
from randcast.key import KeyPair
from randcast.poly import PrivatePolynomial
from randcast.sig import aggregate, partial_sign, partial_verify, sign, verify

MESSAGE = b"ujehwsndfgljkhrlkg"


@pytest.fixture(scope="module")
def dealer():
    poly = PrivatePolynomial.derive(0x1234567890ABCDEF, 2, b"sig-test")
    shares = [Share(index=i, value=scalar_to_hex(poly.eval(eval_point(i)))) for i in range(5)]
    return poly, poly.commit(), shares


@pytest.fixture(scope="module")
def partials(dealer):
    _, _, shares = dealer
    return [partial_sign(share, MESSAGE) for share in shares]


def test_sign_and_verify():
    key = KeyPair.generate()
    signature = sign(key.private_scalar, MESSAGE)
    assert verify(key.public_key, MESSAGE, signature)
    assert not verify(key.public_key, b"another message", signature)
    assert not verify(KeyPair.generate().public_key, MESSAGE, signature)


def test_verify_rejects_garbage():
    key = KeyPair.generate()
    assert not verify(key.public_key, MESSAGE, "00" * 96)
    assert not verify("zz", MESSAGE, sign(key.private_scalar, MESSAGE))


def test_partial_verify(dealer, partials):
    _, public, _ = dealer
    assert partial_verify(public, MESSAGE, partials[1])


def test_partial_verify_rejects_wrong_signer(dealer, partials):
    _, public, _ = dealer
    claimed_by_other = PartialSignature(index=2, value=partials[1].value)
    assert not partial_verify(public, MESSAGE, claimed_by_other)


def test_partial_verify_rejects_wrong_message(dealer, partials):
    _, public, _ = dealer
    assert not partial_verify(public, b"not the message", partials[0])


def test_partial_verify_rejects_negative_index(dealer, partials):
    _, public, _ = dealer
    assert not partial_verify(public, MESSAGE, PartialSignature(index=-1, value=partials[0].value))


def test_partial_sign_rejects_malformed_share():
    with pytest.raises(MalformedShareError):
        partial_sign(Share(index=0, value="00" * 32), MESSAGE)
    with pytest.raises(MalformedShareError):
        partial_sign(Share(index=0, value=(curve_order + 1).to_bytes(32, "big").hex()), MESSAGE)
    with pytest.raises(MalformedShareError):
        partial_sign(Share(index=0, value="not hex"), MESSAGE)


def test_aggregate_threshold_verifies_under_public_key(dealer, partials):
    _, public, _ = dealer
    public_key = g1_to_hex(public.public_key)
    signature = aggregate(3, partials[2:])
    assert verify(public_key, MESSAGE, signature)
    assert aggregate(3, partials) == aggregate(3, [partials[0], partials[1], partials[2]])


def test_aggregate_equals_signature_of_shared_secret(dealer, partials):
    poly, _, _ = dealer
    assert aggregate(3, [partials[4], partials[0], partials[3]]) == sign(poly.secret, MESSAGE)


def test_aggregate_below_threshold_fails(partials):
    with pytest.raises(InsufficientPartialSignaturesError):
        aggregate(3, partials[:2])


def test_aggregate_counts_distinct_signers_only(partials):
    with pytest.raises(InsufficientPartialSignaturesError):
        aggregate(3, [partials[0], partials[0], partials[1]])


def test_aggregate_rejects_non_positive_threshold(partials):
    with pytest.raises(ValueError):
        aggregate(0, partials)


def test_share_points_skip_zero():
    assert [eval_point(i) for i in range(3)] == [1, 2, 3]
    key = KeyPair.generate()
    assert Node(index=4, id="node4", public_key=key.public_key).eval_point == eval_point(4)


def test_partial_signature_is_checked_at_share_point(dealer):
    poly, public, _ = dealer
    share_at_index = Share(index=2, value=scalar_to_hex(poly.eval(2)))
    assert not partial_verify(public, MESSAGE, partial_sign(share_at_index, MESSAGE))
