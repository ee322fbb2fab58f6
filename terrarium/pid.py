"""A clamped PID controller."""

from __future__ import annotations


def _clamp(value: float, low: float, high: float) -> float:
    return low if value < low else high if value > high else value


class PIDController:
    """PID controller with an integral limit and output limits.

    The integral is clamped to ``[-integral_limit, integral_limit]`` and the
    output to ``[output_min, output_max]``; both default to 100.
    """

    def __init__(self, kp: float = 0.0, ki: float = 0.0, kd: float = 0.0) -> None:
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.integral = 0.0
        self.last_error = 0.0
        self.integral_limit = 100.0
        self.output_min = -100.0
        self.output_max = 100.0

    def set_parameters(self, kp: float, ki: float, kd: float) -> None:
        self.kp, self.ki, self.kd = kp, ki, kd

    def set_output_limits(self, minimum: float, maximum: float) -> None:
        self.output_min = minimum
        self.output_max = maximum

    def set_integral_limit(self, limit: float) -> None:
        self.integral_limit = limit

    def update(self, setpoint: float, measurement: float, dt: float) -> float:
        """Advance the controller by ``dt`` and return the clamped output."""
        error = setpoint - measurement
        proportional = self.kp * error

        self.integral = _clamp(
            self.integral + error * dt, -self.integral_limit, self.integral_limit
        )
        integral_term = self.ki * self.integral

        derivative = (error - self.last_error) / dt if dt > 0 else 0.0
        derivative_term = self.kd * derivative

        self.last_error = error
        return _clamp(
            proportional + integral_term + derivative_term,
            self.output_min,
            self.output_max,
        )

    def reset(self) -> None:
        """Forget the accumulated integral and the last error."""
        self.integral = 0.0
        self.last_error = 0.0