from __future__ import annotations

from facemarks.capture.permission import PermissionStatus, StaticPermission


def test_static_permission_defaults_to_authorized() -> None:
    permission = StaticPermission()
    assert permission.status() is PermissionStatus.authorized


def test_request_resolves_undetermined_status() -> None:
    granting = StaticPermission(PermissionStatus.not_determined)
    assert granting.request()
    assert granting.status() is PermissionStatus.authorized

    refusing = StaticPermission(PermissionStatus.not_determined, grant_on_request=False)
    assert not refusing.request()
    assert refusing.status() is PermissionStatus.denied
    assert refusing.request_count == 1
