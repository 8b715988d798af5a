import asyncio
import os
import subprocess
import sys
import threading

from dotenv import load_dotenv

from scoutserver.netinfo import get_local_ip, get_public_ip, startup_banner

APP = "scoutserver.main:create_app"


def stream_output(process, name):
    try:
        for line in iter(process.stdout.readline, b''):
            print(f"[{name}] {line.decode().rstrip()}")
    finally:
        process.stdout.close()


def run_process(name, cmd, cwd):
    proc = subprocess.Popen(
        cmd,
        cwd=cwd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        shell=(sys.platform == "win32")
    )
    thread = threading.Thread(target=stream_output, args=(proc, name), daemon=True)
    thread.start()
    return proc


def terminate_process(proc, name):
    if proc.poll() is None:
        print(f"Terminating {name}...")
        proc.terminate()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            print(f"Forcing kill on {name}")
            proc.kill()


def uvicorn_cmd(host, port, reload=False):
    cmd = [sys.executable, "-m", "uvicorn", APP, "--factory",
           "--host", host, "--port", str(port), "--workers", "1"]
    if reload:
        cmd.append("--reload")
    return cmd


def main(mode):
    load_dotenv()
    project_root = os.path.abspath(os.path.dirname(__file__))
    port = int(os.getenv("PORT", "3000"))

    local_ip = get_local_ip()
    public_ip = asyncio.run(get_public_ip())
    print(startup_banner(port, local_ip, public_ip))

    if mode == "dev":
        server = run_process("SERVER_DEV", uvicorn_cmd("0.0.0.0", port, reload=True), project_root)
    elif mode == "prod":
        server = run_process("SERVER", uvicorn_cmd("0.0.0.0", port), project_root)
    else:
        print("Usage: python run.py [dev|prod]")
        sys.exit(1)

    try:
        server.wait()
    except KeyboardInterrupt:
        terminate_process(server, "SERVER")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: python run.py [dev|prod]")
        sys.exit(1)

    main(sys.argv[1].lower())
