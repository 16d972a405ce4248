#!/usr/bin/env python3
"""
Well-known TCP service labels
"""

COMMON_PORTS = {
    20: "FTP", 21: "FTP", 22: "SSH", 23: "Telnet", 25: "SMTP",
    53: "DNS", 80: "HTTP", 110: "POP3", 139: "NetBIOS", 143: "IMAP",
    389: "LDAP", 443: "HTTPS", 445: "SMB", 3306: "MySQL", 3389: "RDP",
}


def service_name(port: int) -> str:
    """Get the service label for a port, or an empty string if unknown"""
    return COMMON_PORTS.get(port, "")
