"""AX.25-over-IP building blocks: settings, KISS framing, routing, configuration and tty helpers."""