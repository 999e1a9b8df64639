"""Tests for the human verification challenge."""

import pytest

from linkgate.challenge import ChallengeIssuer


def solve(question: str) -> str:
    first, second = question.split("+")
    return str(int(first) + int(second))


@pytest.fixture
def clock():
    return [1_000_000.0]


@pytest.fixture
def issuer(clock):
    return ChallengeIssuer("test-secret", ttl_seconds=120, clock=lambda: clock[0])


class TestChallengeIssuer:
    """Both gates must pass."""

    def test_question_is_small_addition(self, issuer):
        challenge = issuer.issue("abc123")
        first, second = (int(part) for part in challenge.question.split("+"))
        assert 1 <= first <= 10
        assert 1 <= second <= 10

    def test_correct_answer_with_interaction(self, issuer):
        challenge = issuer.issue("abc123")
        assert issuer.verify("abc123", challenge.token, solve(challenge.question), interacted=True) is True

    def test_answer_not_in_token(self, issuer):
        """The token alone does not reveal the expected answer."""
        challenge = issuer.issue("abc123")
        assert challenge.question not in challenge.token

    def test_no_interaction_fails(self, issuer):
        challenge = issuer.issue("abc123")
        assert issuer.verify("abc123", challenge.token, solve(challenge.question), interacted=False) is False

    def test_wrong_answer_fails(self, issuer):
        challenge = issuer.issue("abc123")
        wrong = str(int(solve(challenge.question)) + 1)
        assert issuer.verify("abc123", challenge.token, wrong, interacted=True) is False

    @pytest.mark.parametrize("answer", ["", None, "seven", "3.5"])
    def test_non_numeric_answer_fails(self, issuer, answer):
        challenge = issuer.issue("abc123")
        assert issuer.verify("abc123", challenge.token, answer, interacted=True) is False

    def test_token_bound_to_code(self, issuer):
        challenge = issuer.issue("abc123")
        assert issuer.verify("other", challenge.token, solve(challenge.question), interacted=True) is False

    def test_expired_token_fails(self, issuer, clock):
        challenge = issuer.issue("abc123")
        clock[0] += 121
        assert issuer.verify("abc123", challenge.token, solve(challenge.question), interacted=True) is False

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", None])
    def test_malformed_token_fails(self, issuer, token):
        assert issuer.verify("abc123", token, "5", interacted=True) is False

    def test_other_key_rejects(self, issuer, clock):
        challenge = issuer.issue("abc123")
        other = ChallengeIssuer("another-secret", clock=lambda: clock[0])
        assert other.verify("abc123", challenge.token, solve(challenge.question), interacted=True) is False

    def test_token_is_single_use(self, issuer):
        challenge = issuer.issue("abc123")
        answer = solve(challenge.question)

        assert issuer.verify("abc123", challenge.token, answer, interacted=True) is True
        assert issuer.verify("abc123", challenge.token, answer, interacted=True) is False

    def test_failed_attempt_spends_token(self, issuer):
        """Answers cannot be guessed one after another on the same token."""
        challenge = issuer.issue("abc123")
        answer = solve(challenge.question)

        assert issuer.verify("abc123", challenge.token, str(int(answer) + 1), interacted=True) is False
        assert issuer.verify("abc123", challenge.token, answer, interacted=True) is False

    def test_token_bound_to_client(self, issuer):
        challenge = issuer.issue("abc123", fingerprint="client-a")
        answer = solve(challenge.question)

        assert issuer.verify("abc123", challenge.token, answer, interacted=True, fingerprint="client-b") is False

    def test_same_client_passes(self, issuer):
        challenge = issuer.issue("abc123", fingerprint="client-a")
        answer = solve(challenge.question)

        assert issuer.verify("abc123", challenge.token, answer, interacted=True, fingerprint="client-a") is True

    def test_fresh_tokens_are_independent(self, issuer):
        first = issuer.issue("abc123")
        second = issuer.issue("abc123")

        assert issuer.verify("abc123", first.token, solve(first.question), interacted=True) is True
        assert issuer.verify("abc123", second.token, solve(second.question), interacted=True) is True
