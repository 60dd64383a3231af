from shiftwatch.config import Settings


def test_test_environment_uses_test_database():
    settings = Settings()
    assert settings.is_test is True
    assert settings.is_production is False
    assert settings.database_url == "sqlite://"
    assert settings.database_url_obj.drivername == "sqlite"


def test_ticket_reaction_names_strip_colons_and_blanks():
    settings = Settings(ticket_reactions=" :eyes:, hourglass ,,timer_clock")
    assert settings.ticket_reaction_names == frozenset({"eyes", "hourglass", "timer_clock"})


def test_defaults():
    settings = Settings()
    assert settings.app_name == "shiftwatch-api"
    assert settings.signature_tolerance_seconds == 300
    assert settings.directory_timeout_seconds == 1.5
    assert settings.directory_connect_timeout_seconds == 1.0
    assert "hourglass_flowing_sand" in settings.ticket_reaction_names
