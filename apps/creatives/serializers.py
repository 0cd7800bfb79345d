from rest_framework import serializers
from .models import ImageAsset

class ImageAssetSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = ImageAsset
        fields = [
            'id', 'owner_id', 'artifact', 'source_url', 'storage_url', 'media_type',
            'status', 'error_message', 'attempts', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

class BatchMigrationSerializer(serializers.Serializer):
    asset_ids = serializers.ListField(child=serializers.IntegerField(), required=False, allow_empty=False)
    batch_size = serializers.IntegerField(required=False, min_value=1, max_value=100)

class MigrationResultSerializer(serializers.Serializer):
    asset_id = serializers.IntegerField()
    ok = serializers.BooleanField()
    status = serializers.CharField()
    storage_url = serializers.CharField(allow_null=True)
    error = serializers.CharField(allow_null=True)
