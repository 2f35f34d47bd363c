import pytest
from pydantic import ValidationError

from lnkz.core.setting import Settings


class TestRedirectStatusCode:

    @pytest.mark.parametrize("code", [301, 302, 307, 308])
    def test_redirect_codes_are_accepted(self, code):
        assert Settings(REDIRECT_STATUS_CODE=code).REDIRECT_STATUS_CODE == code

    @pytest.mark.parametrize("code", [200, 303, 404, 500])
    def test_other_codes_are_rejected(self, code):
        with pytest.raises(ValidationError):
            Settings(REDIRECT_STATUS_CODE=code)

    def test_value_from_environment(self, monkeypatch):
        monkeypatch.setenv("REDIRECT_STATUS_CODE", "307")
        assert Settings().REDIRECT_STATUS_CODE == 307


class TestDerivedValues:

    def test_service_domain_is_lowercased_host(self):
        assert Settings(BASE_URL="https://LNKZ.my:8443/").service_domain == "lnkz.my"

    def test_retry_bound_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(SHORT_CODE_MAX_RETRIES=0)
