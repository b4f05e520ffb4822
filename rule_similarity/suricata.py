"""Adapter from parsed Suricata rules to Rule records."""

import logging
from pathlib import Path
from typing import Any

from suricata_rule_parser import SuricataRule, parse_file

from .models import Rule

logger = logging.getLogger(__name__)

# Sticky buffers and app-layer keywords that name the traffic field a rule
# inspects. Legacy underscore forms are kept next to the dot-notation ones.
BUFFER_KEYWORDS = frozenset({
    # HTTP
    "http_uri", "http_raw_uri", "http_method", "http_header", "http_raw_header",
    "http_cookie", "http_user_agent", "http_host", "http_raw_host",
    "http_content_type", "http_referer", "http_stat_code", "http_stat_msg",
    "http_client_body", "http_server_body",
    "http.uri", "http.uri.raw", "http.method", "http.header", "http.header.raw",
    "http.cookie", "http.user_agent", "http.host", "http.host.raw",
    "http.content_type", "http.content_len", "http.referer", "http.accept",
    "http.request_line", "http.response_line", "http.stat_code", "http.stat_msg",
    "http.request_body", "http.response_body", "http.server", "http.location",
    "http.header_names", "http.protocol", "http.start", "urilen",
    # Files
    "file_data", "file.data", "file.name", "file.magic", "filename", "fileext",
    "filemd5", "filesha1", "filesha256", "filesize",
    # DNS
    "dns_query", "dns.query", "dns.opcode", "dns.rcode", "dns.rrtype",
    "dns.queries.rrname", "dns.answers.rrname",
    # TLS / JA3 / JA4
    "tls_sni", "tls.sni", "tls.version", "tls.subject", "tls.issuerdn",
    "tls.cert_subject", "tls.cert_issuer", "tls.cert_serial", "tls.cert_fingerprint",
    "tls.certs", "tls.alpn", "tls.fingerprint", "ssl_version", "ssl_state",
    "ja3_hash", "ja3.hash", "ja3s.hash", "ja3.string", "ja4.hash",
    # SSH
    "ssh_proto", "ssh.proto", "ssh_software", "ssh.software", "ssh.hassh",
    "ssh.hassh.server",
    # Mail
    "smtp.helo", "smtp.mail_from", "smtp.rcpt_to", "email.from", "email.subject",
    "email.to", "email.x_mailer",
    # Windows protocols
    "smb.named_pipe", "smb.share", "smb.ntlmssp_user", "smb.ntlmssp_domain",
    "dcerpc.iface", "dcerpc.opnum", "dcerpc.stub_data", "krb5_cname", "krb5.cname",
    "krb5_sname", "rdp.cookie", "ldap.request.operation", "ldap.request.dn",
    # Misc
    "ftp.command", "ftpdata_command", "sip.method", "sip.uri", "snmp.community",
    "mqtt.connect.clientid", "mqtt.publish.topic", "quic.version", "pgsql.query",
    "app-layer-protocol", "app-layer-event",
})

# Metadata keys feeding each Rule attribute.
TECHNIQUE_KEYS = ("mitre_technique_id",)
THREAT_ACTOR_KEYS = ("threat_actor", "malware_family")
COMPLIANCE_KEYS = ("compliance",)


def from_suricata_rule(rule: SuricataRule) -> Rule:
    """Map a parsed Suricata rule onto the Rule attribute model."""
    metadata = rule.options.metadata or {}
    protocol = (rule.header.protocol or "").lower()

    return Rule(
        id=str(rule.options.sid),
        name=rule.options.msg or str(rule.options.sid),
        mitre_techniques=_metadata_values(metadata, TECHNIQUE_KEYS),
        threat_actors=_metadata_values(metadata, THREAT_ACTOR_KEYS),
        compliance_requirements=_metadata_values(metadata, COMPLIANCE_KEYS),
        query_fields=buffer_keywords(rule),
        data_sources=(protocol,) if protocol else (),
        platform="suricata",
    )


def buffer_keywords(rule: SuricataRule) -> tuple[str, ...]:
    """Return the buffer keywords a rule inspects, in first-seen order."""
    found = [key for key in rule.options.other_options if key in BUFFER_KEYWORDS]
    for modifier in rule.options.content_modifiers:
        found.extend(key for key in modifier if key in BUFFER_KEYWORDS)
    return tuple(dict.fromkeys(found))


def load_suricata_rules(path: str | Path) -> list[Rule]:
    """Parse a ``.rules`` file and convert every rule that carries a sid."""
    rules = []
    for parsed in parse_file(str(path)):
        if parsed.options.sid is None:
            logger.warning("Skipping Suricata rule without sid: %s", parsed.options.msg)
            continue
        rules.append(from_suricata_rule(parsed))
    logger.info("Loaded %d Suricata rules from %s", len(rules), path)
    return rules


def _metadata_values(metadata: dict, keys: tuple[str, ...]) -> tuple[str, ...]:
    """Collect metadata values for any of ``keys``; values may be scalars or lists."""
    values: list[str] = []
    for key in keys:
        values.extend(_flatten(metadata.get(key)))
    return tuple(dict.fromkeys(values))


def _flatten(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if str(v).strip()]
    text = str(value).strip()
    return [text] if text else []
