def desired_replicas(current_replicas, average_usage_pct, target_usage_pct,
                     scale_threshold_pct, min_replicas, max_replicas):
    """Next replica count for an observed average usage.

    Moves at most one replica per decision. Inside the tolerance band the
    current count is returned as-is; otherwise the result is clamped to
    [min_replicas, max_replicas].
    """
    deviation = average_usage_pct - target_usage_pct
    count = current_replicas

    if abs(deviation) < scale_threshold_pct:  # Within tolerance
        return count

    count = count + 1 if deviation > 0 else count - 1
    return max(min_replicas, min(count, max_replicas))
