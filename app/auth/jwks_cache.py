import time
from typing import Optional

import httpx
from jose import jwt


class JWKSCache:
    """Fetches and caches the identity provider's signing keys."""

    def __init__(
        self,
        jwks_url: str,
        ttl_seconds: int = 3600,
        *,
        api_key: str = "",
        hs_secret: str = "",
    ):
        self.jwks_url = jwks_url
        self.ttl = ttl_seconds
        self.api_key = api_key
        self.hs_secret = hs_secret
        self._jwks: Optional[dict] = None
        self._fetched_at = 0.0

    async def get(self) -> dict:
        now = time.time()
        if self._jwks is None or (now - self._fetched_at) > self.ttl:
            if not self.jwks_url:
                raise ValueError("JWKS URL not configured")
            # Clamp timeouts and pool to avoid long stalls
            timeout = httpx.Timeout(connect=3, read=5, write=5, pool=5)
            headers = {}
            if self.api_key:
                headers = {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

            # Deployments differ in where they publish keys
            urls = [self.jwks_url]
            if self.jwks_url.endswith("/certs"):
                base = self.jwks_url[: -len("certs")]
                urls.extend([base + "jwks", base + ".well-known/jwks.json"])

            last_exc: Optional[Exception] = None
            async with httpx.AsyncClient(timeout=timeout) as client:
                for url in urls:
                    try:
                        resp = await client.get(url, headers=headers)
                        if resp.status_code == 404:
                            continue
                        resp.raise_for_status()
                        self._jwks = resp.json()
                        self._fetched_at = now
                        self.jwks_url = url
                        break
                    except httpx.HTTPError as exc:
                        last_exc = exc
                        continue
                else:
                    if last_exc:
                        raise last_exc
                    raise RuntimeError(f"Failed to fetch JWKS. Tried: {urls}")
        return self._jwks or {}

    async def verify(self, token: str, audience: Optional[str] = None) -> dict:
        header = jwt.get_unverified_header(token)
        alg = header.get("alg", "")
        if alg.startswith("HS"):
            if not self.hs_secret:
                raise ValueError("HS token but SUPABASE_JWT_SECRET not configured")
            return jwt.decode(
                token,
                self.hs_secret,
                algorithms=[alg],
                audience=audience,
                options={"verify_aud": audience is not None},
            )

        jwks = await self.get()
        kid = header.get("kid")
        key = None
        if kid:
            key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
            if not key:
                # Keys may have rotated; refresh once
                self._jwks = None
                jwks = await self.get()
                key = next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)
        if not key:
            raise ValueError(f"Signing key not found (alg={alg}, kid={kid})")
        return jwt.decode(
            token,
            key,
            algorithms=[key.get("alg", alg)],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
