# pyright: standard

"""spool-backup: spool_backup/__main__.py.

Back up remote hosts into a local spool with rsync, keeping daily, weekly
and monthly hard-linked snapshots, and report spool health to monitoring.
Requires Python >= 3.11, rsync and ssh.
"""

import sys

from .cli.dispatcher import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("Interrupted", file=sys.stderr)
        sys.exit(130)
