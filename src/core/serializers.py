"""Serializer base classes shared by the apps."""

from rest_framework import serializers


class StrictSerializer(serializers.Serializer):
    """Reject payload keys that are not declared as fields."""

    def to_internal_value(self, data):
        if isinstance(data, dict):
            unknown = [key for key in data if key not in self.fields]
            if unknown:
                raise serializers.ValidationError(
                    {unknown[0]: [f"property {unknown[0]} should not exist"]}
                )
        return super().to_internal_value(data)


__all__ = ["StrictSerializer"]
