"""Text templates for the ancillary files written next to the manifest."""
from __future__ import annotations

from typing import Dict, List

_PHP_LOCATION = """
    location ~ \\.php$ {
        fastcgi_pass php:9000;
        fastcgi_index index.php;
        fastcgi_param SCRIPT_FILENAME $document_root$fastcgi_script_name;
        include fastcgi_params;
    }
"""

_NGINX_SITE = """server {{
    listen {listen};
    server_name {domain};
{tls}
    root /usr/share/nginx/html;
    index index.php index.html;

    location / {{
        try_files $uri $uri/ /index.php?$query_string;
    }}
{php}}}
"""

_NGINX_REDIRECT = """server {{
    listen 80;
    server_name {domain};
    return 301 https://$server_name$request_uri;
}}

"""

_NGINX_TLS = """
    ssl_certificate /etc/nginx/certs/server.crt;
    ssl_certificate_key /etc/nginx/certs/server.key;
"""


def render_nginx_config(domain: str, tls: bool, with_php: bool) -> str:
    """Reverse-proxy site for ``domain``; the domain is interpolated verbatim."""
    php = _PHP_LOCATION if with_php else ""
    if not tls:
        return _NGINX_SITE.format(listen="80", domain=domain, tls="", php=php)
    return _NGINX_REDIRECT.format(domain=domain) + _NGINX_SITE.format(
        listen="443 ssl", domain=domain, tls=_NGINX_TLS, php=php
    )


_APACHE_MODULES = [
    "mpm_event_module modules/mod_mpm_event.so",
    "authz_core_module modules/mod_authz_core.so",
    "authz_host_module modules/mod_authz_host.so",
    "dir_module modules/mod_dir.so",
    "mime_module modules/mod_mime.so",
    "log_config_module modules/mod_log_config.so",
    "unixd_module modules/mod_unixd.so",
    "rewrite_module modules/mod_rewrite.so",
]

_APACHE_PROXY_MODULES = [
    "proxy_module modules/mod_proxy.so",
    "proxy_fcgi_module modules/mod_proxy_fcgi.so",
]

_APACHE_BODY = r"""
User daemon
Group daemon

ServerAdmin you@example.com
DocumentRoot "/usr/local/apache2/htdocs"

<Directory />
    AllowOverride none
    Require all denied
</Directory>

<Directory "/usr/local/apache2/htdocs">
    Options Indexes FollowSymLinks
    AllowOverride All
    Require all granted
</Directory>

<IfModule dir_module>
    DirectoryIndex index.php index.html
</IfModule>

<IfModule mime_module>
    TypesConfig conf/mime.types
</IfModule>

<IfModule log_config_module>
    LogFormat "%h %l %u %t \"%r\" %>s %b \"%{Referer}i\" \"%{User-Agent}i\"" combined
    CustomLog /proc/self/fd/1 combined
    ErrorLog /proc/self/fd/2
</IfModule>

<Files ".ht*">
    Require all denied
</Files>
"""

_APACHE_PHP_HANDLER = """
<FilesMatch \\.php$>
    SetHandler "proxy:fcgi://php:9000"
</FilesMatch>
"""


def render_apache_config(domain: str, with_php: bool) -> str:
    modules = list(_APACHE_MODULES)
    if with_php:
        modules.extend(_APACHE_PROXY_MODULES)
    lines = ['ServerRoot "/usr/local/apache2"', "Listen 80", f"ServerName {domain}", ""]
    lines.extend(f"LoadModule {module}" for module in modules)
    text = "\n".join(lines) + "\n" + _APACHE_BODY
    if with_php:
        text += _APACHE_PHP_HANDLER
    return text


PHP_DEFAULTS: Dict[str, str] = {
    "memory_limit": "256M",
    "upload_max_filesize": "100M",
    "post_max_size": "100M",
    "max_execution_time": "300",
}


def parse_extensions(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def render_php_ini(settings: Dict[str, str]) -> str:
    lines = []
    for key, default in PHP_DEFAULTS.items():
        value = (settings.get(key) or "").strip() or default
        lines.append(f"{key} = {value}")
    lines.append("display_errors = On")
    lines.append("error_reporting = E_ALL")
    for extension in parse_extensions(settings.get("extensions", "")):
        lines.append(f"extension={extension}")
    return "\n".join(lines) + "\n"


_INDEX_PAGE = """<!DOCTYPE html>
<html>
<head>
    <title>DockStack - {name}</title>
    <style>
        body {{ font-family: sans-serif; display: flex; justify-content: center; align-items: center; height: 100vh; margin: 0; background: #f0f2f5; }}
        .container {{ text-align: center; padding: 2rem; background: white; border-radius: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }}
        h1 {{ color: #1a73e8; }}
        p {{ color: #5f6368; }}
    </style>
</head>
<body>
    <div class="container">
        <h1>DockStack</h1>
        <p>Your service is up and running!</p>
        <p>Project: <strong>{name}</strong></p>
        <p><small>PHP Version: <?php echo phpversion(); ?></small></p>
    </div>
</body>
</html>
"""


def render_index_page(project_name: str) -> str:
    return _INDEX_PAGE.format(name=project_name)
