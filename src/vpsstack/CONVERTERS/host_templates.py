"""
Templates for the configuration files written during host hardening.
"""
from jinja2 import Template

SSHD_MARKER = "# Hardening (vpsstack)"

SSHD_HARDENING = Template("""
{{ marker }}
LogLevel VERBOSE
X11Forwarding no
AllowAgentForwarding no
AllowTcpForwarding no
MaxAuthTries 3
MaxSessions 2
TCPKeepAlive no
""")

DISABLE_COREDUMPS = "* hard core 0\n"

UNCOMMON_PROTOCOLS = Template("""
{%- for proto in protocols %}
install {{ proto }} /bin/true
{%- endfor %}
""")

LEGAL_BANNER = """\
*****************************************************************
*                                                               *
* This system is for the use of authorized users only.          *
* Individuals using this computer system without authority, or  *
* in excess of their authority, are subject to having all of    *
* their activities on this system monitored and recorded.       *
*                                                               *
* Anyone using this system expressly consents to such           *
* monitoring and is advised that if such monitoring reveals     *
* possible evidence of criminal activity, system personnel may  *
* provide the evidence of such monitoring to law enforcement    *
* officials.                                                    *
*                                                               *
*****************************************************************
"""

AUDIT_RULES = Template("""\
# Baseline audit rules.
-e 2
-b 8192
-w /etc/audit/ -p wa -k audit_rules
{%- for path in identity %}
-w {{ path }} -p wa -k identity
{%- endfor %}
-w /etc/sudoers -p wa -k sudoers
-w /etc/sudoers.d/ -p wa -k sudoers
-w /etc/ssh/sshd_config -p wa -k sshd_config
{%- for path in logins %}
-w {{ path }} -p wa -k logins
{%- endfor %}
{%- for arch in arches %}
-a always,exit -F arch={{ arch }} -S execve -C uid!=euid -F euid=0 -k priv_esc
{%- endfor %}
{%- for code in ["EACCES", "EPERM"] %}{% for arch in arches %}
-a always,exit -F arch={{ arch }} -S open,creat,truncate -F exit=-{{ code }} -F auid>=1000 -F auid!=unset -k access_denied
{%- endfor %}{% endfor %}
""")

AUTO_UPGRADES = """\
APT::Periodic::Update-Package-Lists "1";
APT::Periodic::Unattended-Upgrade "1";
"""

FINAL_INSTRUCTIONS = Template("""
ACTION REQUIRED:
1. Log out of this root session immediately.
2. Reconnect to the server as the '{{ user }}' user using your SSH key.
   Example: ssh -p {{ port }} {{ user }}@<your_vps_ip>
3. Once reconnected, run: vpsstack host docker

--- Security Auditing ---
To run a manual security audit at any time, use the command:
  sudo lynis audit system

To run a manual rootkit scan, use the command:
  sudo rkhunter --check
""")


def sshd_hardening() -> str:
    return SSHD_HARDENING.render(marker=SSHD_MARKER) + "\n"


def uncommon_protocols(protocols=("dccp", "sctp", "rds", "tipc")) -> str:
    return UNCOMMON_PROTOCOLS.render(protocols=protocols).lstrip("\n") + "\n"


def audit_rules() -> str:
    return AUDIT_RULES.render(
        identity=["/etc/group", "/etc/passwd", "/etc/gshadow", "/etc/shadow", "/etc/security/opasswd"],
        logins=["/var/log/faillog", "/var/log/lastlog", "/var/log/tallylog"],
        arches=["b64", "b32"],
    ) + "\n"


def final_instructions(user: str, port: int) -> str:
    return FINAL_INSTRUCTIONS.render(user=user, port=port).strip()
