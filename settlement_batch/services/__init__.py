"""Rate propagation services: bounded worker pool and the propagator."""
