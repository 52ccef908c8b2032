"""
mirrordocs.commands.serve_cmd - Run the GitHub push webhook server.
"""

from __future__ import annotations

import argparse

from mirrordocs.commands.build_cmd import config_from_args
from mirrordocs.server.webhook import GenerateFromRefs, create_app


def run(args: argparse.Namespace) -> int:
    """Run the serve command until interrupted."""
    config = config_from_args(args)
    generator = GenerateFromRefs(config, args.ref_regex)
    app = create_app(generator)

    print(
        f"""
======================================
  mirrordocs webhook server
======================================

Sources:     {config.srcdir}
Destination: {config.dstdir}
Trigger:     {args.ref_regex}
Server:      http://{args.host}:{args.port}

Press Ctrl+C to stop
"""
    )

    try:
        app.run(host=args.host, port=args.port, debug=False)
    except KeyboardInterrupt:
        print("\nServer stopped.")

    return 0
