from __future__ import annotations

import os
import subprocess
import threading
from pathlib import Path
from typing import Dict, List, Mapping, Optional


class CmdError(Exception):
    pass


def run(
    cmd: List[str], cwd: Optional[str], env: Optional[Mapping[str, str]] = None
) -> str:
    """Execute a command, stream both pipes, and return ONLY stdout text.

    Extra env entries are layered over the current process environment.
    """
    print(f"Running: {' '.join(cmd)}")
    full_env: Optional[Dict[str, str]] = None
    if env:
        full_env = {**os.environ, **env}
    try:
        proc = subprocess.Popen(
            cmd,
            cwd=cwd,
            env=full_env,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,
        )
    except FileNotFoundError as ex:
        raise CmdError(f"Executable not found: {cmd[0]}") from ex

    stdout_buf: List[str] = []

    def pump(pipe, tag: str) -> None:
        try:
            for line in iter(pipe.readline, ""):
                if not line:
                    continue
                line = line.rstrip()
                # Echo to console
                print(line, flush=True)
                if tag == "stdout":
                    stdout_buf.append(line)
        finally:
            pipe.close()

    t_out = threading.Thread(target=pump, args=(proc.stdout, "stdout"), daemon=True)
    t_err = threading.Thread(target=pump, args=(proc.stderr, "stderr"), daemon=True)
    t_out.start()
    t_err.start()
    rc = proc.wait()
    t_out.join()
    t_err.join()

    out_text = "\n".join(stdout_buf).strip()
    if rc != 0:
        raise CmdError(f"Command failed ({rc}): {' '.join(cmd)}\nSTDOUT:\n{out_text}")
    return out_text


def cdktf(
    project_dir: Path, args: List[str], env: Optional[Mapping[str, str]] = None
) -> str:
    return run(["cdktf", *args], cwd=str(project_dir), env=env)
