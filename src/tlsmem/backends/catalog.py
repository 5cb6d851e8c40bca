"""Built-in candidates and their crypto-provider bindings.

``aws-lc`` is the shared provider that puts every candidate on the same
libcrypto. Native libraries (s2n-tls, aws-lc) are built outside the harness
and located through ``--native-prefix``.
"""

from __future__ import annotations

from ..core.types import Candidate, CryptoBinding, ManifestEdit, SourcePin

RUSTLS_REPO = "https://github.com/rustls/rustls"
RUSTLS_REF = "v/0.21.5"

S2N_TLS = Candidate(
    name="s2n-tls",
    crate="s2n-tls",
    default_provider="openssl",
    bindings={
        "openssl": CryptoBinding(provider="openssl"),
        "aws-lc": CryptoBinding(
            provider="aws-lc",
            env={
                "S2N_TLS_LIB_DIR": "{native_prefix}/build/lib",
                "S2N_TLS_INCLUDE_DIR": "{native_prefix}/api",
                "LD_LIBRARY_PATH": "{native_prefix}/build/lib",
            },
        ),
    },
)

RUSTLS = Candidate(
    name="rustls",
    crate="rustls",
    default_provider="ring",
    bindings={
        "ring": CryptoBinding(provider="ring"),
        "aws-lc": CryptoBinding(
            provider="aws-lc",
            sources=(
                SourcePin(
                    name="rustls",
                    repo_url=RUSTLS_REPO,
                    ref=RUSTLS_REF,
                    manifest="rustls/Cargo.toml",
                    edits=(
                        ManifestEdit(
                            pattern=r"^ring = .*$",
                            replacement='ring = { package = "aws-lc-rs", version = "1" }',
                        ),
                    ),
                ),
            ),
            manifest_edits=(
                ManifestEdit(
                    pattern=r"^rustls = .*$",
                    replacement='rustls = { path = "{source:rustls}/rustls" }',
                ),
            ),
        ),
    },
)

OPENSSL = Candidate(
    name="openssl",
    crate="openssl",
    default_provider="openssl",
    bindings={
        "openssl": CryptoBinding(provider="openssl"),
        "aws-lc": CryptoBinding(
            provider="aws-lc",
            env={
                "OPENSSL_DIR": "{native_prefix}/libcrypto-root",
                "LD_LIBRARY_PATH": "{native_prefix}/libcrypto-root/lib",
            },
        ),
    },
)

BUILTIN_CANDIDATES = (S2N_TLS, RUSTLS, OPENSSL)

__all__ = ["BUILTIN_CANDIDATES", "OPENSSL", "RUSTLS", "S2N_TLS"]
