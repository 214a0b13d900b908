"""Dispatch query-string validation."""

from __future__ import annotations

from rest_framework import serializers


class CourierLocationSerializer(serializers.Serializer):
    lat = serializers.FloatField(required=False, min_value=-90, max_value=90)
    lng = serializers.FloatField(required=False, min_value=-180, max_value=180)
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        if ("lat" in attrs) != ("lng" in attrs):
            raise serializers.ValidationError("Provide both lat and lng, or neither.")
        return attrs
