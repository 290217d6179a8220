import dataclasses
import pytest
from rbfc.coarsening import CoarseningSettings, CoarseningError, SelectionMode, GrowthMode
from rbfc.coarsening.config import resolve_settings


def test_default_settings():
    settings = CoarseningSettings()
    assert settings.mode is SelectionMode.DISABLED
    assert settings.growth is GrowthMode.SINGLE
    assert settings.ratio_radius_error == 10.0
    assert not settings.corrects_surface


def test_modes():
    assert CoarseningSettings(enabled=True).mode is SelectionMode.STATIC
    assert CoarseningSettings(enabled=True, live_point_selection=True).mode is SelectionMode.LIVE
    assert CoarseningSettings(enabled=False, live_point_selection=True).mode is SelectionMode.DISABLED
    assert CoarseningSettings(two_point_selection=True).growth is GrowthMode.PAIRED


def test_surface_correction_requires_live_selection():
    assert not CoarseningSettings(enabled=True, surface_correction=True).corrects_surface
    assert CoarseningSettings(enabled=True, live_point_selection=True,
                              surface_correction=True).corrects_surface


def test_from_dict_camel_case():
    settings = CoarseningSettings.from_dict({'enabled': True, 'tol': 1e-4,
                                             'livePointSelection': True,
                                             'tolLivePointSelection': 1e-3,
                                             'minPoints': 10, 'maxPoints': 200,
                                             'twoPointSelection': True,
                                             'ratioRadiusError': 5.0})
    assert settings.mode is SelectionMode.LIVE
    assert settings.growth is GrowthMode.PAIRED
    assert settings.min_points == 10 and settings.max_points == 200
    assert settings.tol_live_point_selection == 1e-3
    assert settings.ratio_radius_error == 5.0


def test_from_dict_snake_case():
    settings = CoarseningSettings.from_dict({'enabled': True, 'min_points': 3})
    assert settings.min_points == 3


def test_from_dict_unknown_key():
    with pytest.raises(CoarseningError):
        CoarseningSettings.from_dict({'enabled': True, 'tolerance': 1e-3})


@pytest.mark.parametrize("kwargs", [{'tol': 0.0}, {'tol': 1.0}, {'tol_live_point_selection': 1.5},
                                    {'min_points': 0}, {'max_points': -1}, {'max_points': 1},
                                    {'min_points': 20, 'max_points': 10},
                                    {'ratio_radius_error': 0.0}])
def test_invalid_settings(kwargs):
    with pytest.raises(CoarseningError):
        CoarseningSettings(**kwargs)


def test_error_is_value_error():
    with pytest.raises(ValueError):
        CoarseningSettings(tol=2.0)


def test_settings_are_frozen():
    settings = CoarseningSettings()
    with pytest.raises(dataclasses.FrozenInstanceError):
        settings.tol = 0.5


def test_updated():
    settings = CoarseningSettings(enabled=True)
    updated = settings.updated(tol=0.1)
    assert updated.tol == 0.1 and updated.enabled
    assert settings.tol == 1e-3
    assert settings.updated() is settings
    with pytest.raises(CoarseningError):
        settings.updated(tolerance=0.1)
    with pytest.raises(CoarseningError):
        settings.updated(min_points=0)


def test_resolve_settings():
    assert resolve_settings().mode is SelectionMode.DISABLED
    assert resolve_settings(None, enabled=True, max_points=5).max_points == 5


def test_verbose_from_environment(monkeypatch):
    monkeypatch.setenv("RBFC_VERBOSE", "yes")
    assert CoarseningSettings().verbose
    monkeypatch.setenv("RBFC_VERBOSE", "0")
    assert not CoarseningSettings().verbose
    monkeypatch.delenv("RBFC_VERBOSE")
    assert not CoarseningSettings().verbose
