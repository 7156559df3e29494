#!/usr/bin/env python3
"""
QuoteCraft - Backend Startup Script
Loads .env, starts the API under uvicorn and keeps it supervised until Ctrl+C.
"""

import os
import sys
import subprocess
import signal
import time
import requests
from pathlib import Path
from typing import Optional
import threading

# Colors for console output
class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

def print_header(text):
    print(f"\n{Colors.HEADER}{Colors.BOLD}{text}{Colors.ENDC}")

def print_success(text):
    print(f"{Colors.OKGREEN}{text}{Colors.ENDC}")

def print_info(text):
    print(f"{Colors.OKBLUE}{text}{Colors.ENDC}")

def print_warning(text):
    print(f"{Colors.WARNING}{text}{Colors.ENDC}")

def print_error(text):
    print(f"{Colors.FAIL}{text}{Colors.ENDC}")


def load_env_file(path: Path) -> None:
    """Populate os.environ with key/value pairs from a simple .env file."""
    if not path.exists():
        return
    try:
        with path.open('r', encoding='utf-8') as handle:
            for raw in handle:
                line = raw.strip()
                if not line or line.startswith('#') or '=' not in line:
                    continue
                key, value = line.split('=', 1)
                os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
    except OSError as exc:
        print_warning(f"Failed to load environment file {path}: {exc}")


def parse_port(value: Optional[str], default: int = 8788) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        print_warning(f"Invalid QUOTECRAFT_PORT '{value}'. Using default {default}.")
        return default


class BackendSupervisor:
    def __init__(self, port: int, reload: bool = False):
        self.root_dir = Path(__file__).parent
        self.backend_dir = self.root_dir / 'packages' / 'backend-python'
        self.port = port
        self.health_url = f'http://localhost:{port}/health'
        self.process: Optional[subprocess.Popen] = None
        self.running = True
        self.cmd = [
            sys.executable, '-m', 'uvicorn',
            'quotecraft_backend.main:app',
            '--host', '0.0.0.0',
            '--port', str(port),
            '--app-dir', 'src/',
        ]
        if reload:
            self.cmd.append('--reload')

    def check_health(self) -> bool:
        try:
            response = requests.get(self.health_url, timeout=2)
        except requests.RequestException:
            return False
        # 503 means the app is up but a collaborator is not configured yet
        return response.status_code in (200, 503)

    def start(self, startup_timeout: float = 20.0) -> bool:
        print_info("Starting QuoteCraft backend...")
        env = os.environ.copy()
        src_path = str(self.backend_dir / 'src')
        env['PYTHONPATH'] = f"{src_path}:{env['PYTHONPATH']}" if env.get('PYTHONPATH') else src_path

        try:
            self.process = subprocess.Popen(
                self.cmd,
                cwd=self.backend_dir,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                bufsize=1,
            )
        except OSError as exc:
            print_error(f"Failed to start backend: {exc}")
            return False

        self.monitor_output()

        deadline = time.monotonic() + startup_timeout
        while time.monotonic() < deadline:
            if self.process.poll() is not None:
                print_error("Backend exited during startup")
                return False
            if self.check_health():
                print_success("Backend started successfully")
                return True
            time.sleep(0.5)

        print_warning("Backend started but health check did not pass yet")
        return True

    def stop(self):
        print_info("Stopping backend...")
        self.running = False
        if self.process and self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
        print_success("Backend stopped")

    def monitor_output(self):
        """Echo backend output from a daemon thread."""
        def pump(process):
            for line in iter(process.stdout.readline, ''):
                if not self.running:
                    break
                if line.strip():
                    print(f"[backend] {line.rstrip()}")

        threading.Thread(target=pump, args=(self.process,), daemon=True).start()

    def run(self) -> int:
        print_header("QuoteCraft Startup")

        def signal_handler(sig, frame):
            print_info("\nShutdown signal received...")
            self.stop()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        if not self.start():
            self.stop()
            return 1

        print_info(f"Backend API: http://localhost:{self.port}")
        print_info(f"Daily job:   http://localhost:{self.port}/api/cron/send-daily-quotes")
        print_info("Press Ctrl+C to stop")

        try:
            while self.running:
                time.sleep(1)
                if self.process.poll() is not None:
                    print_error("Backend stopped unexpectedly")
                    self.running = False
                    return 1
        except KeyboardInterrupt:
            pass

        self.stop()
        return 0


def main():
    """Main entry point"""
    if not (Path.cwd() / 'packages').exists():
        print_error("Please run this script from the project root directory")
        return 1

    load_env_file(Path(__file__).parent / '.env')

    for name in ('LLM_API_KEY', 'RESEND_API_KEY'):
        if not os.environ.get(name) and not (name == 'LLM_API_KEY' and os.environ.get('GEMINI_API_KEY')):
            print_warning(f"{name} is not set; the matching endpoints will fail")
    if not os.environ.get('SUPABASE_URL'):
        print_warning("SUPABASE_URL is not set; subscriptions are kept in memory")

    supervisor = BackendSupervisor(
        port=parse_port(os.environ.get('QUOTECRAFT_PORT')),
        reload='--reload' in sys.argv[1:],
    )
    return supervisor.run()

if __name__ == "__main__":
    sys.exit(main())
