import pytest

from app.services.verification import SUBSCRIBE_MODE, WebhookVerificationError, verify_subscription


class TestVerifySubscription:
    def test_returns_challenge_on_match(self):
        assert verify_subscription("subscribe", "abc", "123", "abc") == "123"

    def test_rejects_wrong_token(self):
        with pytest.raises(WebhookVerificationError):
            verify_subscription("subscribe", "xyz", "123", "abc")

    def test_rejects_wrong_mode(self):
        with pytest.raises(WebhookVerificationError):
            verify_subscription("unsubscribe", "abc", "123", "abc")

    @pytest.mark.parametrize(
        "mode,token,expected",
        [
            (None, "abc", "abc"),
            ("subscribe", None, "abc"),
            ("subscribe", "", "abc"),
            ("subscribe", "abc", None),
            ("subscribe", "", ""),
        ],
    )
    def test_rejects_missing_values(self, mode, token, expected):
        with pytest.raises(WebhookVerificationError):
            verify_subscription(mode, token, "123", expected)

    def test_challenge_is_returned_verbatim(self):
        challenge = " 0042 spaced "
        assert verify_subscription(SUBSCRIBE_MODE, "t", challenge, "t") == challenge

    def test_missing_challenge_becomes_empty_string(self):
        assert verify_subscription(SUBSCRIBE_MODE, "t", None, "t") == ""

    def test_token_compare_is_case_sensitive(self):
        with pytest.raises(WebhookVerificationError):
            verify_subscription("subscribe", "ABC", "1", "abc")
