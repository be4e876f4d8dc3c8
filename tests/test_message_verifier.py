import base64
import hashlib
import hmac

import pytest

from cablerelay.message_verifier import InvalidMessageError, MessageVerifier

KEY = "s3Krit"
TURBO_EXAMPLE = "ImNoYXQ6MjAyMSI=--f9ee45dbccb1da04d8ceb99cc820207804370ba0d06b46fc3b8b373af1315628"
CABLE_READY_EXAMPLE = "InN0cmVhbToyMDIxIg==--44f6315dd9faefe713ef5685e114413c1afe8759197a0fc39b15cee75769417e"


def sign(data: str, key: str = KEY) -> str:
    digest = hmac.new(key.encode(), data.encode(), hashlib.sha256).hexdigest()
    return f"{data}--{digest}"


def test_verifies_turbo_stream_name():
    verifier = MessageVerifier(KEY)
    assert verifier.verified(TURBO_EXAMPLE) == "chat:2021"


def test_verifies_cable_ready_stream():
    verifier = MessageVerifier(KEY)
    assert verifier.verified(CABLE_READY_EXAMPLE) == "stream:2021"


def test_wrong_key_is_rejected():
    verifier = MessageVerifier("other")
    with pytest.raises(InvalidMessageError):
        verifier.verified(TURBO_EXAMPLE)


def test_tampered_digest_is_rejected():
    verifier = MessageVerifier(KEY)
    tampered = TURBO_EXAMPLE[:-1] + ("0" if TURBO_EXAMPLE[-1] != "0" else "1")
    with pytest.raises(InvalidMessageError):
        verifier.verified(tampered)


@pytest.mark.parametrize("msg", ["", "fake_id", "a--b--c"])
def test_malformed_messages_are_rejected(msg):
    verifier = MessageVerifier(KEY)
    with pytest.raises(InvalidMessageError):
        verifier.verified(msg)


def test_signed_non_string_payload_is_rejected():
    data = base64.b64encode(b"[1, 2]").decode()
    verifier = MessageVerifier(KEY)
    with pytest.raises(InvalidMessageError):
        verifier.verified(sign(data))


def test_signed_bad_base64_is_rejected():
    verifier = MessageVerifier(KEY)
    with pytest.raises(InvalidMessageError):
        verifier.verified(sign("not*base64"))


def test_round_trip_with_generated_signature():
    payload = "room:42"
    data = base64.b64encode(f'"{payload}"'.encode()).decode()
    verifier = MessageVerifier(KEY)
    assert verifier.verified(sign(data)) == payload