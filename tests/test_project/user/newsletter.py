"""Newsletter adapter of the user model."""

from listmonk_sync.adapters import SubscriberAdapter


class UserSubscriber(SubscriberAdapter):
    """Expose users to the Listmonk synchronization."""

    tracked_fields = ("plan",)
    soft_delete_field = "deleted_at"

    def get_attributes(self):
        """Send the plan along the subscriber."""
        return {"plan": self.instance.plan}

    def get_lists(self):
        """Paying users also get the customers list."""
        lists = super().get_lists()
        if self.instance.plan != "free":
            lists.append(2)
        return lists
