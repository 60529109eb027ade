"""AX.25 route learning daemon: frame parsing, route cache, kernel updates and control commands."""