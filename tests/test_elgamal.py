import pytest

from egcrypto.elgamal import (
    DiscreteLog,
    ElGamalCiphertext,
    decode_exponent,
    elgamal_add,
    elgamal_combine_public_keys,
    elgamal_encrypt,
    elgamal_keypair_from_secret,
    elgamal_keypair_random,
)
from egcrypto.errors import DiscreteLogError, GuardianError, Result


def test_keypair_from_secret_bounds(group):
    keypair = elgamal_keypair_from_secret(group, 2)
    assert keypair.public_key == group.g_pow_p(2)
    with pytest.raises(ValueError):
        elgamal_keypair_from_secret(group, 1)
    with pytest.raises(ValueError):
        elgamal_keypair_from_secret(group, group.q)


def test_encrypt_then_decrypt_with_secret(group):
    keypair = elgamal_keypair_random(group)
    ciphertext = elgamal_encrypt(group, 17, 999, keypair.public_key)
    blinding = ciphertext.partial_decrypt(group, keypair.secret_key)
    assert DiscreteLog(group).find(ciphertext.decrypt_known_product(group, blinding)) == 17


def test_decrypt_with_single_secret(group):
    keypair = elgamal_keypair_random(group)
    assert elgamal_encrypt(group, 42, 31337, keypair.public_key).decrypt(group, keypair.secret_key) == 42
    assert elgamal_encrypt(group, 0, 5, keypair.public_key).decrypt(group, keypair.secret_key) == 0

    other = elgamal_keypair_random(group)
    huge = elgamal_encrypt(group, 10 ** 7, 77, keypair.public_key)
    assert huge.decrypt(group, keypair.secret_key, max_exponent=100) is None
    assert elgamal_encrypt(group, 42, 31337, keypair.public_key).decrypt(group, other.secret_key, 100) != 42


def test_encrypt_rejects_zero_nonce_and_negative_message(group):
    keypair = elgamal_keypair_random(group)
    with pytest.raises(ValueError):
        elgamal_encrypt(group, 1, 0, keypair.public_key)
    with pytest.raises(ValueError):
        elgamal_encrypt(group, -1, 5, keypair.public_key)


def test_homomorphic_addition_with_split_key(group):
    first = elgamal_keypair_random(group)
    second = elgamal_keypair_random(group)
    joint = elgamal_combine_public_keys(group, [first.public_key, second.public_key])

    total = elgamal_add(group, *(elgamal_encrypt(group, m, group.rand_range_q(1), joint) for m in (3, 0, 4)))
    blinding = group.mult_p(total.partial_decrypt(group, first.secret_key),
                            total.partial_decrypt(group, second.secret_key))
    assert DiscreteLog(group).find(total.decrypt_known_product(group, blinding)) == 7


def test_elgamal_add_needs_input(group):
    with pytest.raises(ValueError):
        elgamal_add(group)


def test_discrete_log_bound(group):
    assert DiscreteLog(group, 50).find(group.g_pow_p(50)) == 50
    with pytest.raises(DiscreteLogError):
        DiscreteLog(group, 10).find(group.g_pow_p(group.q - 1))
    assert decode_exponent(group, group.g_pow_p(group.q - 1), 10) is None


def test_ciphertext_is_value_object():
    assert ElGamalCiphertext(1, 2) == ElGamalCiphertext(1, 2)


def test_result_holds_exactly_one_side():
    assert Result.ok(5).unwrap() == 5
    failed = Result.failure("nope")
    assert not failed.is_ok
    with pytest.raises(GuardianError):
        failed.unwrap()
    with pytest.raises(ValueError):
        Result()
