class WebhookRegistry:
    def names(self) -> tuple[str, ...]:
        """
        Return the webhook names every LoadBalancerDriver must declare,
        in an order that is stable across calls.
        """
        raise NotImplementedError
