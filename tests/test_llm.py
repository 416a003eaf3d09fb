"""Tests for the structured LLM client: offline narrator, parsing and retry policy."""

import json

import httpx
import openai
import pytest

from grid_swarm.errors import (
    ErrorKind,
    FatalInferenceError,
    RateLimitedError,
    TransientInferenceError,
    classify_provider_error,
)
from grid_swarm.llm import parse_packet
from grid_swarm.narratives import NARRATIVES, PHASES, offline_packet
from tests.conftest import ScriptedCompletion, make_llm, packet_json


def _status_error(cls, status: int):
    request = httpx.Request("POST", "https://api.example.test/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return cls("provider said no", response=response, body=None)


# ---------------------------------------------------------------------------
# Offline narrator
# ---------------------------------------------------------------------------

class TestOffline:
    def test_unconfigured_client_uses_offline_table(self):
        llm = make_llm()
        assert llm.is_configured is False
        packet = llm.generate("WA", "prompt", cycle=0)
        assert packet.log_code == NARRATIVES[PHASES[0]]["WA"]["log_code"]

    def test_offline_is_periodic_over_five_cycles(self):
        llm = make_llm()
        first = [llm.generate("WA", "p", cycle=c).log_code for c in range(5)]
        again = [llm.generate("WA", "p", cycle=c).log_code for c in range(5, 10)]
        assert first == again
        assert len(set(first)) == 5

    def test_unknown_stage_gets_default_packet(self):
        assert offline_packet("ZZ", 3).log_code == "SIM_DATA"

    def test_offline_never_calls_sleep_when_latency_is_zero(self):
        sleeps = []
        llm = make_llm(sleep=sleeps.append)
        llm.generate("LF", "p", cycle=1)
        assert sleeps == []


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

class TestParsePacket:
    def test_plain_json(self):
        packet = parse_packet(packet_json("wind ramp down"))
        assert packet.log_code == "WIND_RAMP_DOWN"

    def test_code_fence_is_stripped(self):
        raw = "```json\n" + packet_json("LOAD_FLAT") + "\n```"
        assert parse_packet(raw).log_code == "LOAD_FLAT"

    def test_extra_fields_are_ignored(self):
        raw = json.dumps({"log_code": "X", "confidence": 0.9})
        assert parse_packet(raw).analysis == ""

    @pytest.mark.parametrize("raw", ["", "not json", "{}", '{"analysis": "no code"}', '{"log_code": ""}'])
    def test_invalid_payload_is_transient(self, raw):
        with pytest.raises(TransientInferenceError) as info:
            parse_packet(raw, stage="GS")
        assert info.value.kind == ErrorKind.TRANSIENT
        assert info.value.stage == "GS"


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------

class TestRetryPolicy:
    def test_success_on_first_attempt(self):
        stub = ScriptedCompletion([packet_json("ALL_CLEAR")])
        llm = make_llm(stub)
        assert llm.generate("CM", "prompt").log_code == "ALL_CLEAR"
        assert stub.prompts == ["prompt"]

    def test_transient_failure_is_retried_with_fixed_delay(self):
        sleeps = []
        stub = ScriptedCompletion(["garbage", TimeoutError("slow"), packet_json("RECOVERY")])
        llm = make_llm(stub, retry_delay_s=1.0, sleep=sleeps.append)
        assert llm.generate("GS", "p").log_code == "RECOVERY"
        assert stub.calls == 3
        assert sleeps == [1.0, 1.0]

    def test_transient_failures_exhaust_retries(self):
        stub = ScriptedCompletion(["bad", "bad", "bad", packet_json()])
        llm = make_llm(stub)
        with pytest.raises(TransientInferenceError):
            llm.generate("LF", "p")
        assert stub.calls == 3

    def test_rate_limit_is_never_retried(self):
        stub = ScriptedCompletion([RateLimitedError("429 Too Many Requests")])
        llm = make_llm(stub)
        with pytest.raises(RateLimitedError) as info:
            llm.generate("WA", "p")
        assert stub.calls == 1
        assert info.value.stage == "WA"

    def test_fatal_is_never_retried(self):
        stub = ScriptedCompletion([FatalInferenceError("bad key")])
        llm = make_llm(stub)
        with pytest.raises(FatalInferenceError):
            llm.generate("WA", "p")
        assert stub.calls == 1

    def test_zero_retries_means_single_attempt(self):
        stub = ScriptedCompletion(["bad", packet_json()])
        llm = make_llm(stub, max_retries=0)
        with pytest.raises(TransientInferenceError):
            llm.generate("WA", "p")
        assert stub.calls == 1

    def test_negative_retries_raise_instead_of_returning(self):
        stub = ScriptedCompletion()
        llm = make_llm(stub, max_retries=-1)
        with pytest.raises(TransientInferenceError, match="no attempt made"):
            llm.generate("GS", "p")
        assert stub.calls == 0


class TestCredentials:
    def test_api_key_marks_client_configured(self):
        llm = make_llm()
        llm.update_credentials("sk-test", "https://proxy.example.test/v1")
        assert llm.is_configured
        assert llm.base_url == "https://proxy.example.test/v1"
        llm.update_credentials("")
        assert llm.is_configured is False


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class TestClassifyProviderError:
    def test_openai_rate_limit(self):
        err = classify_provider_error(_status_error(openai.RateLimitError, 429), stage="OP")
        assert isinstance(err, RateLimitedError)
        assert err.stage == "OP"
        assert not err.retryable

    def test_openai_authentication_is_fatal(self):
        err = classify_provider_error(_status_error(openai.AuthenticationError, 401))
        assert err.kind == ErrorKind.FATAL

    def test_server_error_is_transient(self):
        err = classify_provider_error(_status_error(openai.InternalServerError, 503))
        assert err.kind == ErrorKind.TRANSIENT
        assert err.retryable

    def test_429_in_message_is_rate_limited(self):
        err = classify_provider_error(RuntimeError("HTTP 429: quota"))
        assert err.kind == ErrorKind.RATE_LIMITED

    def test_generic_exception_is_transient(self):
        cause = ValueError("boom")
        err = classify_provider_error(cause)
        assert err.kind == ErrorKind.TRANSIENT
        assert err.cause is cause

    def test_inference_errors_pass_through(self):
        original = FatalInferenceError("x")
        assert classify_provider_error(original) is original
