"""Traffic log files: timestamped lines, instance names and rotation."""

import os
import time

_LOGNAME_MAX = 79


def gen_instance_logname(template, instance):
    """Log file name for one instance of a facility, e.g. ``<template>-<n>.log``."""
    return f"{template}-{instance}.log"[:_LOGNAME_MAX]


def genatime(now):
    """The timestamp used in log lines, in ``ctime`` form without newline."""
    return time.ctime(now)


def write_daemon_err(path, msg):
    """Append an error message to the daemon log at ``path``."""
    with open(path, "a", encoding="utf-8") as fd:
        fd.write(f"{genatime(time.time())} iptraf[{os.getpid()}]: {msg}\n")


class TrafficLog:
    """An append-mode log file that can be reopened on request."""

    def __init__(self, path):
        self.path = os.fspath(path)
        self._file = open(self.path, "a", encoding="utf-8")
        self.rotate_pending = False
        self.target = ""

    @property
    def closed(self):
        return self._file is None

    def write(self, msg):
        """Write ``msg`` as one timestamped line and flush it."""
        if self._file is None:
            raise ValueError("log file is closed")
        self._file.write(f"{genatime(time.time())}; {msg}\n")
        self._file.flush()

    def request_rotate(self, target):
        """Ask for the log to be reopened at ``target`` on the next check."""
        self.target = os.fspath(target)
        self.rotate_pending = True

    def rotate(self, path):
        """Close the current file and continue logging to ``path``."""
        self.close()
        self.path = os.fspath(path)
        self._file = open(self.path, "a", encoding="utf-8")
        self.rotate_pending = False

    def check_rotate(self):
        """Carry out a pending rotation; return True if one happened."""
        if not self.rotate_pending:
            return False
        self.announce_rotate_prepare()
        self.rotate(self.target)
        self.announce_rotate_complete()
        self.rotate_pending = False
        return True

    def announce_rotate_prepare(self):
        self.write("***** USR1 signal received, preparing to reopen log file *****")

    def announce_rotate_complete(self):
        self.write("***** Logfile reopened *****")

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()