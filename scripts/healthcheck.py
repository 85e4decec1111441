#!/usr/bin/env python3
"""HRMS Health Check — verify the API is up and guarded.

Checks:
  1. Backend API responds on /api/v1/health (HTTP 200, valid JSON)
  2. Protected endpoints reject anonymous calls (401 envelope)
  3. Admin login works (only when credentials are supplied)
  4. SSL certificate valid and not expiring soon (https targets)

Usage:
    python scripts/healthcheck.py                                # check http://localhost:8000
    python scripts/healthcheck.py --url https://hrms.example.com
    python scripts/healthcheck.py --email admin@demo.hrms --password demo-pass-123
    python scripts/healthcheck.py --json                         # machine-readable output

Exit codes:
    0 = all checks passed
    1 = one or more checks failed
"""

from __future__ import annotations

import argparse
import json
import os
import socket
import ssl
import sys
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlparse

import requests

# ══════════════════════════════════════════════════════════════════════
# Check result model
# ══════════════════════════════════════════════════════════════════════


class CheckResult:
    """Single health check result."""

    def __init__(self, name: str, passed: bool, message: str,
                 detail: str = "", severity: str = "error"):
        self.name = name
        self.passed = passed
        self.message = message
        self.detail = detail
        self.severity = severity  # "error", "warning", "info"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "passed": self.passed,
            "message": self.message,
            "detail": self.detail,
            "severity": self.severity,
        }

    def __str__(self) -> str:
        icon = "✅" if self.passed else ("⚠️" if self.severity == "warning" else "❌")
        s = f"{icon} {self.name}: {self.message}"
        if self.detail:
            s += f"\n     {self.detail}"
        return s


# ══════════════════════════════════════════════════════════════════════
# Health checks
# ══════════════════════════════════════════════════════════════════════

def check_backend_health(base_url: str, timeout: int = 10) -> CheckResult:
    """Check that the backend API /api/v1/health responds correctly."""
    health_url = f"{base_url.rstrip('/')}/api/v1/health"
    try:
        resp = requests.get(health_url, timeout=timeout)
    except requests.exceptions.SSLError as e:
        return CheckResult("Backend API", False, "SSL error connecting to backend", str(e))
    except requests.exceptions.RequestException as e:
        return CheckResult("Backend API", False, "Cannot connect to backend", str(e))

    if resp.status_code != 200:
        return CheckResult(
            "Backend API", False,
            f"HTTP {resp.status_code} (expected 200)",
            f"URL: {health_url}",
        )
    try:
        body = resp.json()
    except ValueError:
        return CheckResult("Backend API", False, "Response is not JSON", resp.text[:200])

    if body.get("status") != "healthy":
        return CheckResult(
            "Backend API", False,
            f"Status: {body.get('status', 'missing')} (expected 'healthy')",
            f"Response: {json.dumps(body)}",
        )
    return CheckResult(
        "Backend API", True,
        f"Healthy (v{body.get('version', 'unknown')}, {body.get('environment', 'unknown')})",
        f"URL: {health_url}",
    )


def check_auth_guard(base_url: str, timeout: int = 10) -> CheckResult:
    """An anonymous call to a protected endpoint must get a 401 envelope."""
    url = f"{base_url.rstrip('/')}/api/v1/dashboard/stats"
    try:
        resp = requests.post(url, json={}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        return CheckResult("Auth Guard", False, "Request failed", str(e))

    if resp.status_code != 401:
        return CheckResult(
            "Auth Guard", False,
            f"HTTP {resp.status_code} for anonymous call (expected 401)",
            f"URL: {url}",
        )
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if body.get("status") is not False:
        return CheckResult(
            "Auth Guard", False,
            "401 response is not an error envelope",
            resp.text[:200],
            severity="warning",
        )
    return CheckResult("Auth Guard", True, "Anonymous calls are rejected", body.get("message", ""))


def check_admin_login(base_url: str, email: str, password: str, timeout: int = 10) -> CheckResult:
    url = f"{base_url.rstrip('/')}/api/v1/auth/admin/login"
    try:
        resp = requests.post(url, json={"email": email, "password": password}, timeout=timeout)
    except requests.exceptions.RequestException as e:
        return CheckResult("Admin Login", False, "Request failed", str(e))

    if resp.status_code != 200:
        return CheckResult(
            "Admin Login", False,
            f"HTTP {resp.status_code} (expected 200)",
            resp.text[:200],
        )
    data = resp.json().get("data") or {}
    organisation = (data.get("organisation") or {}).get("name", "none")
    if not data.get("access_token"):
        return CheckResult("Admin Login", False, "No access token in response")
    return CheckResult("Admin Login", True, f"Logged in as {email}", f"Organisation: {organisation}")


def check_ssl_certificate(hostname: str, port: int = 443,
                          warn_days: int = 14) -> CheckResult:
    """Check SSL certificate validity and expiry."""
    try:
        ctx = ssl.create_default_context()
        with socket.create_connection((hostname, port), timeout=10) as sock:
            with ctx.wrap_socket(sock, server_hostname=hostname) as ssock:
                cert = ssock.getpeercert()
    except ssl.SSLCertVerificationError as e:
        return CheckResult("SSL Certificate", False, "Certificate verification failed", str(e))
    except (socket.timeout, OSError) as e:
        return CheckResult(
            "SSL Certificate", False,
            f"Cannot connect to {hostname}:{port}",
            str(e),
        )

    not_after = cert.get("notAfter", "")
    if not not_after:
        return CheckResult("SSL Certificate", False, "Cannot read certificate expiry")

    # Format: 'Mar 15 12:00:00 2025 GMT'
    expiry = datetime.strptime(not_after, "%b %d %H:%M:%S %Y %Z").replace(tzinfo=timezone.utc)
    days_left = (expiry - datetime.now(timezone.utc)).days
    issuer = dict(x[0] for x in cert.get("issuer", []))
    issuer_cn = issuer.get("commonName", "unknown")

    if days_left < 0:
        return CheckResult(
            "SSL Certificate", False,
            f"EXPIRED {abs(days_left)} days ago!",
            f"Issuer: {issuer_cn}, Expired: {not_after}",
        )
    if days_left < warn_days:
        return CheckResult(
            "SSL Certificate", True,
            f"Expiring soon: {days_left} days left",
            f"Issuer: {issuer_cn}, Expires: {not_after}",
            severity="warning",
        )
    return CheckResult(
        "SSL Certificate", True,
        f"Valid ({days_left} days until expiry)",
        f"Issuer: {issuer_cn}",
    )


# ══════════════════════════════════════════════════════════════════════
# Runner
# ══════════════════════════════════════════════════════════════════════

def run_healthcheck(
    url: str,
    email: Optional[str] = None,
    password: Optional[str] = None,
    timeout: int = 10,
) -> list[CheckResult]:
    """Run all health checks and return results."""
    results: list[CheckResult] = []
    parsed = urlparse(url)

    results.append(check_backend_health(url, timeout))
    results.append(check_auth_guard(url, timeout))

    if email and password:
        results.append(check_admin_login(url, email, password, timeout))
    else:
        results.append(CheckResult(
            "Admin Login", True,
            "Skipped (no credentials)",
            severity="info",
        ))

    if parsed.scheme == "https":
        results.append(check_ssl_certificate(parsed.hostname))

    return results


def main():
    parser = argparse.ArgumentParser(description="HRMS Health Check")
    parser.add_argument("--url", type=str,
                        default=os.environ.get("HRMS_HEALTH_URL", "http://localhost:8000"),
                        help="Base URL to check (default: http://localhost:8000)")
    parser.add_argument("--email", type=str, default=os.environ.get("HRMS_HEALTH_EMAIL"))
    parser.add_argument("--password", type=str, default=os.environ.get("HRMS_HEALTH_PASSWORD"))
    parser.add_argument("--json", dest="output_json", action="store_true",
                        help="Output results as JSON")
    parser.add_argument("--timeout", type=int, default=10,
                        help="HTTP timeout in seconds (default: 10)")
    args = parser.parse_args()

    now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    if not args.output_json:
        print(f"""
{'=' * 60}
  HRMS — HEALTH CHECK
  Target : {args.url}
  Time   : {now}
{'=' * 60}
""")

    results = run_healthcheck(args.url, args.email, args.password, args.timeout)

    if args.output_json:
        output = {
            "timestamp": now,
            "target": args.url,
            "checks": [r.to_dict() for r in results],
            "all_passed": all(r.passed for r in results),
        }
        print(json.dumps(output, indent=2))
    else:
        for result in results:
            print(result)
            print()
        failed = sum(1 for r in results if not r.passed)
        print(f"{'=' * 60}")
        if failed == 0:
            print(f"  ✅ ALL {len(results)} CHECKS PASSED")
        else:
            print(f"  ❌ {failed}/{len(results)} CHECKS FAILED")
        print(f"{'=' * 60}")

    sys.exit(1 if any(not r.passed for r in results) else 0)


if __name__ == "__main__":
    main()
