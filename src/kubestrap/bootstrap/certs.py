# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kubestrap/bootstrap/certs.py

"""
Cluster CA and apiserver serving certificate.

The CA lives under the local kubestrap home and is created once; the
apiserver certificate is reissued on every run so its SANs follow the
current host config. kubeadm picks both up from certificatesDir and
generates the remaining certificates itself.
"""

from __future__ import annotations

import datetime
import ipaddress
import logging
import os
import posixpath
from pathlib import Path
from typing import List, NamedTuple, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from kubestrap import constants
from kubestrap.assets.models import DeliveryUnit
from kubestrap.config.models import HostConfig
from kubestrap.errors import RenderError

log = logging.getLogger("kubestrap")

CA_CERT = "ca.crt"
CA_KEY = "ca.key"
APISERVER_CERT = "apiserver.crt"
APISERVER_KEY = "apiserver.key"

CA_COMMON_NAME = "kubestrapCA"
APISERVER_COMMON_NAME = "kube-apiserver"

KEY_SIZE = 2048
CA_VALIDITY = datetime.timedelta(days=3650)
CERT_VALIDITY = datetime.timedelta(days=365)

CLUSTER_DNS_NAMES = (
    "localhost",
    "kubernetes",
    "kubernetes.default",
    "kubernetes.default.svc",
    "kubernetes.default.svc.cluster.local",
)


class CertificateAuthority(NamedTuple):
    cert: x509.Certificate
    key: rsa.RSAPrivateKey


def _new_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=KEY_SIZE)


def _cert_pem(cert: x509.Certificate) -> bytes:
    return cert.public_bytes(serialization.Encoding.PEM)


def _key_pem(key: rsa.RSAPrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


def _validity(lifetime: datetime.timedelta) -> Tuple[datetime.datetime, datetime.datetime]:
    now = datetime.datetime.now(datetime.timezone.utc)
    # tolerate small clock skew between this machine and the node
    return now - datetime.timedelta(hours=1), now + lifetime


def apiserver_sans(host: HostConfig) -> Tuple[List[str], List[ipaddress.IPv4Address | ipaddress.IPv6Address]]:
    """
    DNS names and IPs the apiserver is reachable on: the node itself,
    loopback, and the first address of the service CIDR (the in-cluster
    "kubernetes" service).
    """
    if not (host.node_ip or "").strip():
        raise RenderError("node_ip is required to issue the apiserver certificate")
    try:
        addrs = [ipaddress.ip_address(host.node_ip)]
        if host.advertise_address:
            addrs.append(ipaddress.ip_address(host.advertise_address))
        service_ip = next(ipaddress.ip_network(host.service_cidr, strict=False).hosts())
    except (ValueError, StopIteration) as e:
        raise RenderError(f"apiserver certificate addresses: {e}") from e
    addrs += [service_ip, ipaddress.ip_address("127.0.0.1")]

    dns = list(CLUSTER_DNS_NAMES)
    if host.node_name:
        dns.insert(0, host.node_name)

    ips: list = []
    for a in addrs:
        if a not in ips:
            ips.append(a)
    return dns, ips


class CertGenerator:
    """Issues the certificates kubeadm would otherwise create with a fresh CA."""

    def __init__(self, certs_dir: Path):
        self.certs_dir = Path(certs_dir)

    @property
    def ca_cert_path(self) -> Path:
        return self.certs_dir / CA_CERT

    @property
    def ca_key_path(self) -> Path:
        return self.certs_dir / CA_KEY

    def load_or_create_ca(self) -> CertificateAuthority:
        if self.ca_cert_path.is_file() and self.ca_key_path.is_file():
            log.debug("Using existing CA at %s", self.certs_dir)
            cert = x509.load_pem_x509_certificate(self.ca_cert_path.read_bytes())
            key = serialization.load_pem_private_key(self.ca_key_path.read_bytes(), password=None)
            return CertificateAuthority(cert, key)

        log.info("Generating cluster CA in %s", self.certs_dir)
        key = _new_key()
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, CA_COMMON_NAME)])
        not_before, not_after = _validity(CA_VALIDITY)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .sign(key, hashes.SHA256())
        )

        os.makedirs(self.certs_dir, exist_ok=True)
        self.ca_cert_path.write_bytes(_cert_pem(cert))
        self.ca_key_path.write_bytes(_key_pem(key))
        os.chmod(self.ca_key_path, 0o600)
        return CertificateAuthority(cert, key)

    def issue_apiserver_cert(self, ca: CertificateAuthority, host: HostConfig) -> Tuple[bytes, bytes]:
        dns, ips = apiserver_sans(host)
        key = _new_key()
        not_before, not_after = _validity(CERT_VALIDITY)
        cert = (
            x509.CertificateBuilder()
            .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, APISERVER_COMMON_NAME)]))
            .issuer_name(ca.cert.subject)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH, ExtendedKeyUsageOID.CLIENT_AUTH]),
                critical=False,
            )
            .add_extension(
                x509.SubjectAlternativeName(
                    [x509.DNSName(d) for d in dns] + [x509.IPAddress(ip) for ip in ips]
                ),
                critical=False,
            )
            .sign(ca.key, hashes.SHA256())
        )
        return _cert_pem(cert), _key_pem(key)

    def generate(self, host: HostConfig) -> List[DeliveryUnit]:
        ca = self.load_or_create_ca()
        cert_pem, key_pem = self.issue_apiserver_cert(ca, host)

        def unit(content: bytes, name: str, perms: str) -> DeliveryUnit:
            return DeliveryUnit.from_bytes(content, posixpath.join(host.cert_dir, name), perms)

        return [
            unit(_cert_pem(ca.cert), CA_CERT, constants.CERT_PERMISSIONS),
            unit(_key_pem(ca.key), CA_KEY, constants.KEY_PERMISSIONS),
            unit(cert_pem, APISERVER_CERT, constants.CERT_PERMISSIONS),
            unit(key_pem, APISERVER_KEY, constants.KEY_PERMISSIONS),
        ]
