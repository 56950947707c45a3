from pathlib import Path

import pytest
import yaml

from fakes import Capture, FakeGit, FakeRuntime, ScriptedInput
from nvr_installer.config.models import EnvDefaults, ProvisionConfig
from nvr_installer.errors import LockedError, MissingValueError, ProvisionError
from nvr_installer.observers.dispatcher import EventBus
from nvr_installer.provision.lock import target_lock
from nvr_installer.provision.models import EnvironmentFile
from nvr_installer.provision.workflow import Provisioner


def _config(tmp_path: Path, **kw) -> ProvisionConfig:
    kw.setdefault("interactive", False)
    kw.setdefault("env", EnvDefaults(nvr_url="rtsp://cam.local/stream"))
    return ProvisionConfig(target_dir=tmp_path / "nvr", **kw)


def _provisioner(cfg, git=None, runtime=None, cap=None, **kw):
    return Provisioner(
        cfg,
        git=git or FakeGit(),
        runtime=runtime or FakeRuntime(),
        bus=EventBus([cap] if cap else []),
        run_id="run-1",
        sleep=lambda s: None,
        **kw,
    )


def test_end_to_end_on_empty_target(tmp_path: Path):
    cfg = _config(tmp_path)
    cap = Capture()
    runtime = FakeRuntime()

    report = _provisioner(cfg, runtime=runtime, cap=cap).run()

    target = cfg.target_dir
    values = EnvironmentFile(target / ".env").read()
    assert list(values) == ["HOST_IP", "NVR_URL", "ADMIN_USER", "ADMIN_PASSWORD"]
    assert values["NVR_URL"] == "rtsp://cam.local/stream"

    compose = yaml.safe_load((target / "docker-compose.yml").read_text())
    assert list(compose["services"]) == ["frontend", "ffmpeg"]

    assert report.stages == ["repository", "environment", "compose", "activation"]
    assert report.env_source == "synthesized"
    assert report.compose.origin == "synthesized"
    assert report.activation.url == "http://0.0.0.0:3000"
    assert [c[0] for c in runtime.calls] == ["pull", "up", "status"]

    assert cap.kinds() == [
        "StageStarted", "StageCompleted",   # repository
        "StageStarted", "StageCompleted",   # environment
        "StageStarted", "StageCompleted",   # compose
        "StageStarted", "StageCompleted",   # activation
        "ProvisionSummary",
    ]
    summary = cap.events[-1]
    assert summary.url == "http://0.0.0.0:3000"
    assert summary.run_id == "run-1"


def test_missing_required_value_fails_environment_stage_without_prompting(tmp_path: Path):
    cfg = _config(tmp_path, env=EnvDefaults())
    inp = ScriptedInput()
    runtime = FakeRuntime()
    cap = Capture()

    with pytest.raises(ProvisionError) as ei:
        _provisioner(cfg, runtime=runtime, cap=cap, input_source=inp).run()

    assert ei.value.stage == "environment"
    assert isinstance(ei.value.cause, MissingValueError)
    assert ei.value.cause.key == "NVR_URL"
    assert inp.prompts == []
    assert runtime.calls == []
    assert cap.kinds()[-1] == "StageFailed"


def test_git_failure_stops_at_repository_stage(tmp_path: Path):
    cfg = _config(tmp_path)
    runtime = FakeRuntime()
    with pytest.raises(ProvisionError) as ei:
        _provisioner(cfg, git=FakeGit(fail="clone"), runtime=runtime).run()

    assert ei.value.stage == "repository"
    assert "exit status: 128" in ei.value.details()
    assert not (cfg.target_dir / ".env").exists()
    assert runtime.calls == []


def test_activation_failure_is_tagged(tmp_path: Path):
    cfg = _config(tmp_path, image_strategy="build")
    with pytest.raises(ProvisionError) as ei:
        _provisioner(cfg, runtime=FakeRuntime(build=1)).run()
    assert ei.value.stage == "activation"


def test_rerun_converges_and_skips_satisfied_stages(tmp_path: Path):
    cfg = _config(tmp_path)
    git = FakeGit()
    _provisioner(cfg, git=git).run()
    env_before = (cfg.target_dir / ".env").read_text()
    compose_before = (cfg.target_dir / "docker-compose.yml").read_text()

    cap = Capture()
    report = _provisioner(cfg, git=git, cap=cap).run()

    assert [c[0] for c in git.calls] == ["clone", "fetch_all", "reset_hard"]
    assert (cfg.target_dir / ".env").read_text() == env_before
    assert (cfg.target_dir / "docker-compose.yml").read_text() == compose_before
    assert report.env_source == "existing"
    assert report.compose.origin == "existing"
    skipped = [e.stage for e in cap.events if e.__class__.__name__ == "StageSkipped"]
    assert skipped == ["environment", "compose"]


def test_repository_files_drive_env_and_compose(tmp_path: Path):
    git = FakeGit(files={
        ".env.example": "HOST_IP=10.1.1.1\nNVR_URL=rtsp://x\n",
        "deploy/docker-compose.yml": "version: '3.8'\nservices:\n  app:\n    image: nginx\n",
    })
    cfg = _config(tmp_path)
    report = _provisioner(cfg, git=git).run()

    assert report.env_source == "template:.env.example"
    assert report.compose.path == cfg.target_dir / "deploy" / "docker-compose.yml"
    assert report.compose.version_stripped
    assert report.activation.url == "http://10.1.1.1:3000"


def test_concurrent_run_is_refused(tmp_path: Path):
    cfg = _config(tmp_path)
    git = FakeGit()
    with target_lock(cfg.lock_path):
        with pytest.raises(ProvisionError) as ei:
            _provisioner(cfg, git=git).run()
    assert ei.value.stage == "lock"
    assert isinstance(ei.value.cause, LockedError)
    assert git.calls == []


class _Preparer:
    def __init__(self):
        self.ran = 0

    def run(self):
        self.ran += 1
        return ["prerequisites", "docker-engine"]


def test_host_preparation_runs_first_when_requested(tmp_path: Path):
    cfg = _config(tmp_path, prepare_host=True)
    prep = _Preparer()
    cap = Capture()
    report = _provisioner(cfg, cap=cap, host_preparer=prep).run()

    assert prep.ran == 1
    assert cap.events[0].stage == "host"
    assert report.stages[0] == "repository"


def test_host_preparation_without_preparer_fails(tmp_path: Path):
    cfg = _config(tmp_path, prepare_host=True)
    with pytest.raises(ProvisionError) as ei:
        _provisioner(cfg).run()
    assert ei.value.stage == "host"


class _BrokenPreparer:
    def run(self):
        return None


def test_host_stage_failure_is_not_reported_as_lock(tmp_path: Path):
    cfg = _config(tmp_path, prepare_host=True)
    with pytest.raises(ProvisionError) as ei:
        _provisioner(cfg, host_preparer=_BrokenPreparer()).run()
    assert ei.value.stage == "host"


def test_lock_released_after_failed_run(tmp_path: Path):
    cfg = _config(tmp_path, image_strategy="build")
    with pytest.raises(ProvisionError):
        _provisioner(cfg, runtime=FakeRuntime(build=1)).run()
    report = _provisioner(cfg).run()
    assert report.activation.built
