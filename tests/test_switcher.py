# Tests for ccglm.switcher
# Lock-guarded switch and restore workflows

import errno

import pytest

from ccglm import store
from ccglm.backup import BackupManager
from ccglm.config.secrets import Secrets
from ccglm.errors import MissingDependencyError
from ccglm.profiles import Profile, build_profile_env
from ccglm.switcher import ProfileSwitcher, check_dependencies


@pytest.fixture
def switcher(config, secrets, backups) -> ProfileSwitcher:
    return ProfileSwitcher(config, secrets, backups=backups)


class TestSwitch:
    """Tests for switching profiles."""

    def test_end_to_end_round_trip(self, switcher, write_settings):
        original = {"env": {"CUSTOM": "keep"}}
        settings = write_settings(original)

        result = switcher.switch(Profile.ALTERNATE)
        assert result.success, result.error
        doc = store.read(settings)
        assert doc["env"]["CUSTOM"] == "keep"
        assert doc["env"]["CLAUDE_MODEL_PROVIDER"] == "zhipu"
        assert doc["env"]["ANTHROPIC_AUTH_TOKEN"] == "abc123"

        result = switcher.switch(Profile.DEFAULT)
        assert result.success, result.error
        assert store.read(settings) == original

    def test_result_describes_change(self, switcher, write_settings):
        write_settings({"env": {"CUSTOM": "keep"}})

        result = switcher.switch(Profile.ALTERNATE)

        assert result.applied
        assert result.previous == Profile.DEFAULT
        assert result.backup is not None
        assert "CLAUDE_MODEL_PROVIDER" in result.keys_added
        assert "CUSTOM" not in result.keys_added
        assert result.keys_removed == []

    def test_double_apply_alternate(self, switcher, write_settings):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        once = settings.read_bytes()

        result = switcher.switch(Profile.ALTERNATE)

        assert result.success
        assert not result.has_changes
        assert settings.read_bytes() == once

    def test_alternate_backup_is_clean(self, switcher, backups, write_settings):
        write_settings({"model": "opus", "env": {"CUSTOM": "keep", **build_profile_env("old")}})

        result = switcher.switch(Profile.DEFAULT)

        assert result.backup_cleaned
        assert store.read(result.backup.path) == {"model": "opus", "env": {"CUSTOM": "keep"}}

    def test_default_keeps_user_anthropic_keys(self, switcher, write_settings):
        original = {"env": {"ANTHROPIC_BASE_URL": "https://proxy.example.com", "CUSTOM": "keep"}}
        settings = write_settings(original)

        assert switcher.switch(Profile.DEFAULT).success

        assert store.read(settings) == original

    @pytest.mark.parametrize("profile", [Profile.DEFAULT, Profile.ALTERNATE])
    def test_dry_run_changes_nothing(self, switcher, backups, write_settings, profile):
        settings = write_settings({"env": {"CUSTOM": "keep", **build_profile_env("old")}})
        before = settings.read_bytes()

        result = switcher.switch(profile, dry_run=True)

        assert result.success, result.error
        assert result.dry_run
        assert not result.applied
        assert result.backup is None
        assert result.planned_backup.startswith("settings_backup_")
        assert settings.read_bytes() == before
        assert backups.list_backups() == []

    def test_dry_run_reports_keys(self, switcher, write_settings):
        write_settings({"env": {"CUSTOM": "keep"}})
        result = switcher.switch(Profile.ALTERNATE, dry_run=True)
        assert len(result.keys_added) == 8

    def test_malformed_target_leaves_file_untouched(self, switcher, write_settings, monkeypatch):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        before = settings.read_bytes()
        monkeypatch.setattr(
            "ccglm.switcher.compute_target_document",
            lambda baseline, profile, token=None: {"env": {"BROKEN": float("nan")}},
        )

        result = switcher.switch(Profile.ALTERNATE)

        assert not result.success
        assert result.exit_code != 0
        assert "not valid JSON" in result.error
        assert settings.read_bytes() == before

    def test_lock_held_blocks_switch(self, switcher, config, write_settings):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        before = settings.read_bytes()
        config.lock_path.parent.mkdir(parents=True, exist_ok=True)
        config.lock_path.write_text("4242\n", encoding="utf-8")

        result = switcher.switch(Profile.ALTERNATE)

        assert not result.success
        assert result.exit_code != 0
        assert "4242" in result.error
        assert settings.read_bytes() == before
        assert config.lock_path.exists()

    def test_lock_released_after_switch(self, switcher, config, write_settings):
        write_settings({})
        switcher.switch(Profile.DEFAULT)
        assert not config.lock_path.exists()

    def test_missing_settings_file(self, switcher, settings_file):
        result = switcher.switch(Profile.ALTERNATE)
        assert not result.success
        assert "empty or missing" in result.error
        assert result.hint

    def test_invalid_settings_file(self, switcher, backups, settings_file):
        settings_file.write_text("{nope", encoding="utf-8")
        result = switcher.switch(Profile.DEFAULT)
        assert not result.success
        assert "Invalid JSON" in result.error
        assert backups.list_backups() == []

    def test_missing_secrets(self, config, backups, write_settings):
        settings = write_settings({})
        switcher = ProfileSwitcher(config, Secrets(), backups=backups)

        result = switcher.switch(Profile.ALTERNATE)

        assert not result.success
        assert "Secrets file not found" in result.error
        assert not config.lock_path.exists()
        assert store.read(settings) == {}

    def test_default_needs_no_secrets(self, config, backups, write_settings):
        write_settings({"env": build_profile_env("old")})
        switcher = ProfileSwitcher(config, Secrets(), backups=backups)
        assert switcher.switch(Profile.DEFAULT).success

    def test_invalid_token(self, config, backups, secrets_file, write_settings):
        settings = write_settings({})
        before = settings.read_bytes()
        switcher = ProfileSwitcher(config, Secrets(source=secrets_file, auth_token="bad token"), backups=backups)

        result = switcher.switch(Profile.ALTERNATE)

        assert not result.success
        assert "invalid format" in result.error
        assert settings.read_bytes() == before
        assert backups.list_backups() == []

    @pytest.mark.parametrize("runs", [1, 3, 7])
    def test_backup_monotonicity(self, config, secrets, clock, write_settings, runs):
        write_settings({"env": {"CUSTOM": "keep"}})
        manager = BackupManager(config.backup_path, 3, clock=clock)
        switcher = ProfileSwitcher(config, secrets, backups=manager)

        created = []
        for i in range(runs):
            profile = Profile.ALTERNATE if i % 2 == 0 else Profile.DEFAULT
            result = switcher.switch(profile)
            assert result.success, result.error
            created.append(result.backup.path)

        remaining = [r.path for r in manager.list_backups()]
        assert len(remaining) == min(runs, 3)
        assert remaining == list(reversed(created))[: len(remaining)]

    def test_retention_of_one(self, config, secrets, clock, write_settings):
        write_settings({})
        manager = BackupManager(config.backup_path, 1, clock=clock)
        switcher = ProfileSwitcher(config, secrets, backups=manager)

        results = [switcher.switch(p) for p in (Profile.ALTERNATE, Profile.DEFAULT, Profile.ALTERNATE)]

        remaining = manager.list_backups()
        assert len(remaining) == 1
        assert remaining[0].path == results[-1].backup.path


class TestFileSystemFailures:
    """Tests for I/O errors surfacing as results."""

    def test_write_failure_keeps_live_file(self, switcher, config, write_settings, monkeypatch):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        before = settings.read_bytes()

        def disk_full(path, content):
            raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr("ccglm.store.atomic_write", disk_full)
        result = switcher.switch(Profile.ALTERNATE)

        assert not result.success
        assert result.exit_code != 0
        assert not result.applied
        assert "No space left on device" in result.error
        assert settings.read_bytes() == before
        assert not config.lock_path.exists()

    def test_unexpected_os_error_becomes_result(self, switcher, backups, config, write_settings, monkeypatch):
        write_settings({})

        def broken_prune(*, protect=None):
            raise OSError(errno.EIO, "Input/output error", str(backups.backup_dir))

        monkeypatch.setattr(backups, "prune", broken_prune)
        result = switcher.switch(Profile.DEFAULT)

        assert not result.success
        assert result.exit_code == 1
        assert result.error.startswith("File system error")
        assert result.hint
        assert not config.lock_path.exists()

    def test_unusable_lock_directory(self, config, secrets, backups, write_settings, temp_dir):
        settings = write_settings({})
        before = settings.read_bytes()
        blocker = temp_dir / "blocker"
        blocker.write_text("", encoding="utf-8")
        blocked = config.model_copy(update={"lock_file": str(blocker / "switcher.lock")})

        result = ProfileSwitcher(blocked, secrets, backups=backups).switch(Profile.ALTERNATE)

        assert not result.success
        assert "Cannot create lock file" in result.error
        assert settings.read_bytes() == before


class TestDependencies:
    """Tests for the client command check."""

    def test_missing_client(self, config, monkeypatch):
        monkeypatch.setattr("ccglm.switcher.shutil.which", lambda cmd: None)
        strict = config.model_copy(update={"require_client": True})
        with pytest.raises(MissingDependencyError) as exc_info:
            check_dependencies(strict)
        assert "claude command not found" in exc_info.value.message

    def test_check_disabled(self, config, monkeypatch):
        monkeypatch.setattr("ccglm.switcher.shutil.which", lambda cmd: None)
        check_dependencies(config)

    def test_missing_client_fails_switch_before_lock(self, config, secrets, backups, write_settings, monkeypatch):
        settings = write_settings({})
        monkeypatch.setattr("ccglm.switcher.shutil.which", lambda cmd: None)
        switcher = ProfileSwitcher(config.model_copy(update={"require_client": True}), secrets, backups=backups)

        result = switcher.switch(Profile.DEFAULT)

        assert not result.success
        assert result.hint
        assert backups.list_backups() == []
        assert store.read(settings) == {}


class TestRestore:
    """Tests for restoring backups through the switcher."""

    def test_restore_round_trip(self, switcher, backups, write_settings):
        original = {"model": "opus", "env": {"CUSTOM": "keep"}}
        settings = write_settings(original)
        switcher.switch(Profile.ALTERNATE)

        result = switcher.restore(1)

        assert result.success, result.error
        assert store.read(settings) == original
        assert result.pre_restore is not None
        names = [r.name for r in backups.list_backups()]
        assert result.restored.name not in names
        assert result.pre_restore.name in names

    def test_pre_restore_holds_previous_live(self, switcher, write_settings):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        live_before = settings.read_bytes()

        result = switcher.restore(1)

        assert result.pre_restore.path.read_bytes() == live_before

    def test_restore_dry_run(self, switcher, backups, write_settings):
        settings = write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        before = settings.read_bytes()
        listing = [r.name for r in backups.list_backups()]

        result = switcher.restore(1, dry_run=True)

        assert result.success
        assert not result.applied
        assert settings.read_bytes() == before
        assert [r.name for r in backups.list_backups()] == listing

    def test_dry_run_plans_pre_restore_backup(self, switcher, write_settings):
        write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)

        result = switcher.restore(1, dry_run=True)

        assert result.pre_restore_planned
        assert result.pre_restore_skipped is None
        assert result.pre_restore is None

    def test_dry_run_over_missing_live_file(self, switcher, write_settings, settings_file):
        write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        settings_file.unlink()

        result = switcher.restore(1, dry_run=True)

        assert result.success, result.error
        assert not result.pre_restore_planned
        assert result.pre_restore_skipped is None

    def test_dry_run_over_invalid_live_file(self, switcher, write_settings, settings_file):
        write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        settings_file.write_text("{broken", encoding="utf-8")

        result = switcher.restore(1, dry_run=True)

        assert result.success, result.error
        assert not result.pre_restore_planned
        assert "Invalid JSON" in result.pre_restore_skipped

    def test_restore_invalid_index(self, switcher, write_settings):
        settings = write_settings({})
        switcher.switch(Profile.DEFAULT)
        before = settings.read_bytes()

        result = switcher.restore(5)

        assert not result.success
        assert "Invalid backup number" in result.error
        assert settings.read_bytes() == before

    def test_restore_without_backups(self, switcher, write_settings):
        write_settings({})
        result = switcher.restore(1)
        assert not result.success
        assert "No backup files found" in result.error

    def test_restore_over_missing_live_file(self, switcher, backups, write_settings, settings_file):
        write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        settings_file.unlink()

        result = switcher.restore(1)

        assert result.success, result.error
        assert result.pre_restore is None
        assert store.read(settings_file) == {"env": {"CUSTOM": "keep"}}

    def test_restore_over_invalid_live_file(self, switcher, write_settings, settings_file):
        write_settings({"env": {"CUSTOM": "keep"}})
        switcher.switch(Profile.ALTERNATE)
        settings_file.write_text("{broken", encoding="utf-8")

        result = switcher.restore(1)

        assert result.success, result.error
        assert result.pre_restore is None
        assert result.pre_restore_skipped
        assert store.read(settings_file) == {"env": {"CUSTOM": "keep"}}

    def test_restore_blocked_by_lock(self, switcher, config, write_settings):
        settings = write_settings({})
        switcher.switch(Profile.DEFAULT)
        before = settings.read_bytes()
        config.lock_path.write_text("1\n", encoding="utf-8")

        result = switcher.restore(1)

        assert not result.success
        assert settings.read_bytes() == before
