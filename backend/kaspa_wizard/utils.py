import string
import random
import json
import os
from datetime import datetime, timezone


def get_unique_id():
    characters = string.ascii_letters + string.digits
    return ''.join(random.choice(characters) for _ in range(10))


def make_json_serializable(data):
    # Go through data recursively and convert datetimes to strings
    def rec(x):
        # Note: converts tuple and set to list
        if isinstance(x, list) or isinstance(x, tuple) or isinstance(x, set):
            return [rec(y) for y in x]
        elif isinstance(x, dict):
            return {rec(key): rec(val) for key, val in x.items()}
        elif isinstance(x, datetime):
            return x.isoformat()
        else:
            return x

    new_data = rec(data)

    return new_data


# Deduplicates a list, keeping the first occurrence
def deduplicate(lst, key=lambda x:x):
    existing = {}
    deduplicated = []
    for x in lst:
        if key(x) not in existing:
            existing[key(x)] = True
            deduplicated.append(x)
    return deduplicated


# In ISO string format
def get_current_utc_time():
    current_time_utc = datetime.now(timezone.utc)
    iso_time_utc = current_time_utc.isoformat()
    return iso_time_utc


def parse_iso_time(iso_str):
    # Older state files were written by a JS backend with a trailing Z
    if iso_str.endswith('Z'):
        iso_str = iso_str[:-1] + '+00:00'
    dt = datetime.fromisoformat(iso_str)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def seconds_since(iso_str):
    return (datetime.now(timezone.utc) - parse_iso_time(iso_str)).total_seconds()


# Human readable age like "5 minutes ago"
def format_age(iso_str):
    seconds = seconds_since(iso_str)
    minutes = int(seconds // 60)
    hours = int(seconds // 3600)
    days = int(seconds // 86400)

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "just now"


# Formats a byte count like "1.5 KB"
def format_bytes(num_bytes):
    if num_bytes == 0:
        return "0 Bytes"
    units = ['Bytes', 'KB', 'MB', 'GB']
    i = 0
    size = float(num_bytes)
    while size >= 1024 and i < len(units) - 1:
        size /= 1024
        i += 1
    return f"{round(size, 2):g} {units[i]}"


# Accepts the loose booleans that come out of .env files and HTML forms
def is_truthy(val):
    if isinstance(val, bool):
        return val
    if val is None:
        return False
    return str(val).strip().lower() in ('true', '1', 'yes', 'on')


def read_json_file(path, default=None):
    try:
        with open(path, 'r') as fhand:
            return json.load(fhand)
    except FileNotFoundError:
        return default


# Writes to a temp file first so that a reader never sees half a file
def write_json_file(path, data):
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    tmp_path = path + '.tmp'
    with open(tmp_path, 'w') as fhand:
        json.dump(make_json_serializable(data), fhand, indent=2)
    os.replace(tmp_path, path)
