import base64
import hashlib
import http.cookiejar as cookielib
import json
import re
from pathlib import Path
from typing import Callable, Optional

import requests
import srp

from clientbuild.logger import get_console
from clientbuild.src.core.errors import AuthError, TransportFault
from clientbuild.src.utils.config_loader import get_session_dir

console = get_console()

AUTH_ENDPOINT = "https://idmsa.apple.com/appleauth/auth"
WIDGET_KEY_URL = (
    "https://appstoreconnect.apple.com/olympus/v1/app/config?hostname=itunesconnect.apple.com"
)


class SrpPassword:
    """Password encoder for Apple's s2k SRP variant"""

    def __init__(self, password: str):
        self.password = password
        self.salt = b""
        self.iterations = 0
        self.key_length = 32

    def set_encrypt_info(self, salt: bytes, iterations: int, key_length: int):
        self.salt = salt
        self.iterations = iterations
        self.key_length = key_length

    def encode(self):
        password_hash = hashlib.sha256(self.password.encode("utf-8")).digest()
        return hashlib.pbkdf2_hmac(
            "sha256", password_hash, self.salt, self.iterations, self.key_length
        )


class AppleDeveloperAuth:
    """Apple ID login for the developer portal with a session kept on disk"""

    def __init__(self, session_dir: Optional[Path] = None, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.session_dir = Path(session_dir or get_session_dir())
        self.email: Optional[str] = None
        self.session_data = {}
        self.csrf: Optional[str] = None
        self.csrf_ts: Optional[str] = None
        self._widget_key: Optional[str] = None

    def _session_id(self, email: str) -> str:
        return f"auth-{hashlib.sha256(email.encode()).hexdigest()[:8]}"

    @property
    def cookiejar_path(self) -> Path:
        if not self.email:
            raise ValueError("Email not set")
        return self.session_dir / f"{self._session_id(self.email)}.cookies"

    @property
    def session_path(self) -> Path:
        if not self.email:
            raise ValueError("Email not set")
        return self.session_dir / f"{self._session_id(self.email)}.session"

    @property
    def widget_key(self) -> str:
        if not self._widget_key:
            response = self.session.get(WIDGET_KEY_URL)
            self._widget_key = response.json().get("authServiceKey", "")
        return self._widget_key

    def load_session(self, email: str) -> bool:
        """Load cookies and session data saved by an earlier login"""
        self.email = email
        self.session.cookies = cookielib.LWPCookieJar(filename=str(self.cookiejar_path))
        if self.cookiejar_path.exists():
            try:
                self.session.cookies.load(ignore_discard=True, ignore_expires=True)
            except (OSError, cookielib.LoadError) as e:
                console.print(f"[yellow]Failed to load cookies: {e}")

        if not self.session_path.exists():
            self.session_data = {"email": email}
            return False
        try:
            with open(self.session_path) as f:
                self.session_data = json.load(f)
            return True
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[yellow]Failed to load session: {e}")
            self.session_data = {"email": email}
            return False

    def save_session(self) -> None:
        self.session_dir.mkdir(parents=True, exist_ok=True)
        with open(self.session_path, "w") as f:
            json.dump(self.session_data, f)
        # Keep everything, Apple marks the useful cookies as session cookies
        self.session.cookies.save(ignore_discard=True, ignore_expires=True)
        console.print("[green]Session saved[/] [dim](sensitive data hidden)[/]")

    def _cookie(self, name: str) -> Optional[str]:
        return next((c.value for c in self.session.cookies if c.name == name), None)

    def _fetch_csrf(self, url: str) -> bool:
        response = self.session.get(url)
        if response.status_code != 200:
            return False

        self.csrf = self._cookie("csrf") or response.headers.get("csrf")
        self.csrf_ts = self._cookie("csrf_ts") or response.headers.get("csrf_ts")
        if not self.csrf or not self.csrf_ts:
            for name in ("csrf", "csrf_ts"):
                match = re.search(name + r"[\"']\s*:\s*[\"']([^\"']+)[\"']", response.text)
                if match:
                    setattr(self, name, match.group(1))
        return bool(self.csrf and self.csrf_ts)

    def validate_token(self) -> bool:
        """Check whether the stored session still works and fetch CSRF tokens."""
        if not self.session_data.get("session_id") or not self.session_data.get("scnt"):
            return False

        response = self.session.get(
            "https://developer.apple.com/services-account/v1/certificates",
            headers={
                "Accept": "application/json, text/plain, */*",
                "Content-Type": "application/vnd.api+json",
                "X-Requested-With": "XMLHttpRequest",
                "X-Apple-ID-Session-Id": self.session_data["session_id"],
                "scnt": self.session_data["scnt"],
            },
        )
        # Authenticated sessions get 403 here because no team is selected
        if response.status_code != 403:
            return False
        return self._fetch_csrf("https://developer.apple.com/account/resources")

    def authenticate(
        self,
        email: str,
        password: str,
        ask_code: Optional[Callable[[], str]] = None,
    ) -> None:
        """Log in, reusing a saved session when possible. Raises AuthError on failure."""
        if not email or not password:
            raise AuthError("Apple ID and password are required")

        try:
            self.load_session(email)
            if self.validate_token():
                console.print("[green]Using existing Apple session")
                return
            self._srp_login(email, password, ask_code)
        except requests.RequestException as e:
            raise TransportFault(f"Could not reach Apple: {e}")

    def _srp_login(self, email: str, password: str, ask_code) -> None:
        console.print("Session invalid or expired, authenticating from scratch...")
        self.session_data = {"email": email}

        srp_password = SrpPassword(password)
        srp.rfc5054_enable()
        srp.no_username_in_x()
        user = srp.User(email, srp_password, hash_alg=srp.SHA256, ng_type=srp.NG_2048)
        account_name, a = user.start_authentication()

        headers = {
            "Accept": "application/json, text/javascript",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
            "X-Apple-Widget-Key": self.widget_key,
        }

        init = self.session.post(
            f"{AUTH_ENDPOINT}/signin/init",
            headers=headers,
            json={
                "a": base64.b64encode(a).decode(),
                "accountName": account_name,
                "protocols": ["s2k", "s2k_fo"],
            },
        )
        if init.status_code != 200:
            raise AuthError(f"Apple rejected the sign in request ({init.status_code})")

        challenge = init.json()
        salt = base64.b64decode(challenge["salt"])
        srp_password.set_encrypt_info(salt, challenge["iteration"], 32)
        m1 = user.process_challenge(salt, base64.b64decode(challenge["b"]))
        if m1 is None:
            raise AuthError("Could not process Apple's sign in challenge")

        complete = self.session.post(
            f"{AUTH_ENDPOINT}/signin/complete",
            params={"isRememberMeEnabled": "true"},
            headers=headers,
            json={
                "accountName": account_name,
                "c": challenge["c"],
                "m1": base64.b64encode(m1).decode(),
                "m2": base64.b64encode(user.H_AMK).decode(),
                "rememberMe": True,
            },
        )

        session_id = complete.headers.get("X-Apple-ID-Session-Id")
        scnt = complete.headers.get("scnt")

        if complete.status_code == 409:
            self._verify_two_factor(session_id, scnt, ask_code)
        elif complete.status_code not in (200, 302):
            raise AuthError(
                f"Invalid Apple ID credentials for {email} ({complete.status_code})"
            )

        self.session_data.update({"session_id": session_id, "scnt": scnt, "email": email})
        self.save_session()
        if not self._fetch_csrf("https://developer.apple.com/account"):
            raise AuthError("Logged in but could not retrieve CSRF tokens")

    def _verify_two_factor(self, session_id: str, scnt: str, ask_code) -> None:
        if ask_code is None:
            raise AuthError("Two-factor authentication required but input is disabled")

        headers = {
            "Accept": "application/json, text/javascript",
            "Content-Type": "application/json",
            "X-Requested-With": "XMLHttpRequest",
            "X-Apple-ID-Session-Id": session_id,
            "scnt": scnt,
            "X-Apple-Widget-Key": self.widget_key,
        }
        verify = self.session.post(
            f"{AUTH_ENDPOINT}/verify/trusteddevice/securitycode",
            json={"securityCode": {"code": ask_code().strip()}},
            headers=headers,
        )
        if verify.status_code != 204:
            raise AuthError(f"Verification code rejected ({verify.status_code})")

        trust = self.session.get(f"{AUTH_ENDPOINT}/2sv/trust", headers=headers)
        if trust.status_code != 204:
            raise AuthError(f"Could not trust this session ({trust.status_code})")
        console.print("[green]2FA verification successful[/]")
