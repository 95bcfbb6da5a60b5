# tests/test_validators.py
import pytest

from utils.document_tracker.errors import ValidationError
from utils.document_tracker.validators import FormValidator, ensure_valid, password_strength


@pytest.fixture
def validator():
    return FormValidator()


class TestPasswordStrength:

    def test_strong_password(self):
        strength = password_strength('Sunny-Day-42')
        assert strength.is_valid
        assert strength.score == 5
        assert strength.label == 'Very Strong'

    @pytest.mark.parametrize('password,missing', [
        ('short1A!', None),
        ('alllowercase1!', 'uppercase'),
        ('ALLUPPERCASE1!', 'lowercase'),
        ('NoDigitsHere!', 'number'),
        ('NoSpecial123', 'special'),
        ('Ab1!', '8 characters'),
    ])
    def test_each_rule(self, password, missing):
        strength = password_strength(password)
        if missing is None:
            assert strength.is_valid
        else:
            assert any(missing in line for line in strength.feedback)

    def test_empty(self):
        strength = password_strength('')
        assert strength.score == 0
        assert strength.label == 'Very Weak'
        assert not strength.is_valid


class TestAuthForms:

    @pytest.mark.parametrize('email', ['', '   ', 'plainaddress', 'a@b', 'a b@example.com'])
    def test_bad_emails(self, validator, email):
        assert validator.validate_email(email)

    def test_good_email(self, validator):
        assert validator.validate_email(' ann@example.com ') is None

    def test_sign_in_requires_password(self, validator):
        assert validator.validate_sign_in('ann@example.com', '') == {'password': 'Password is required'}

    def test_sign_up_collects_all_errors(self, validator):
        errors = validator.validate_sign_up('R2-D2', 'nope', 'weak', 'other')
        assert set(errors) == {'full_name', 'email', 'password', 'confirm_password'}

    def test_sign_up_valid(self, validator):
        assert validator.validate_sign_up("Anne-Marie O'Neil", 'ann@example.com', 'Sunny-Day-42', 'Sunny-Day-42') == {}

    def test_new_password_mismatch(self, validator):
        errors = validator.validate_new_password('Sunny-Day-42', 'Sunny-Day-43')
        assert errors == {'confirm_password': 'Passwords do not match'}


class TestSettingsForm:

    def test_blank_targets_mean_no_target(self, validator):
        cleaned, errors = validator.validate_settings({'target_all': '', 'target_top': ' 40 '})
        assert errors == {}
        assert cleaned == {'target_all': None, 'target_top': 40}

    def test_history_limit_is_clamped(self, validator):
        assert validator.validate_settings({'history_limit': '2'})[0] == {'history_limit': 5}
        assert validator.validate_settings({'history_limit': '500'})[0] == {'history_limit': 50}

    @pytest.mark.parametrize('values,field', [
        ({'target_all': 'ten'}, 'target_all'),
        ({'target_invoice': '-1'}, 'target_invoice'),
        ({'history_limit': '1.5'}, 'history_limit'),
        ({'topx': '0'}, 'topx'),
        ({'automation_url': 'http://hooks.example.com'}, 'automation_url'),
        ({'automation_url': 'https://[::1/hook'}, 'automation_url'),
        ({'automation_url': 'https://example.com:99999/hook'}, 'automation_url'),
        ({'automation_url': 'https://localhost/hook'}, 'automation_url'),
    ])
    def test_rejected_values(self, validator, values, field):
        _, errors = validator.validate_settings(values)
        assert field in errors

    def test_blank_url_clears_it(self, validator):
        assert validator.validate_settings({'automation_url': '  '})[0] == {'automation_url': None}

    def test_public_https_url_is_kept(self, validator):
        url = 'https://hooks.example.com/run'
        assert validator.validate_settings({'automation_url': url}) == ({'automation_url': url}, {})


class TestCustomerForm:

    def test_name_required(self, validator):
        assert 'customer_name' in validator.validate_customer({'customer_name': '  '})

    def test_administration_mail_optional_but_checked(self, validator):
        assert validator.validate_customer({'customer_name': 'Acme', 'administration_mail': ''}) == {}
        assert 'administration_mail' in validator.validate_customer(
            {'customer_name': 'Acme', 'administration_mail': 'not-an-email'}
        )

    def test_customer_id_characters(self, validator):
        assert 'id' in validator.validate_customer({'id': 'a b'})


def test_ensure_valid_raises_with_field_errors():
    ensure_valid({})
    with pytest.raises(ValidationError) as exc:
        ensure_valid({'email': 'Invalid email format'})
    assert exc.value.for_field('email') == 'Invalid email format'
