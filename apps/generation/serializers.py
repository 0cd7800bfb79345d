from rest_framework import serializers
from .models import GenerationArtifact

class GenerationRequestSerializer(serializers.Serializer):
    kind = serializers.CharField(max_length=50)
    payload = serializers.JSONField()
    project_ref = serializers.CharField(max_length=100, required=False, allow_blank=True, default='')
    idempotency_key = serializers.CharField(max_length=255, required=False)

    def validate_payload(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError("payload must be a JSON object.")
        return value

class GenerationArtifactSerializer(serializers.ModelSerializer):
    owner_id = serializers.IntegerField(read_only=True)
    assets = serializers.SerializerMethodField()

    class Meta:
        model = GenerationArtifact
        fields = ['id', 'owner_id', 'project_ref', 'kind', 'provider', 'content', 'credits_spent', 'assets', 'created_at']
        read_only_fields = fields

    def get_assets(self, obj):
        return [
            {'id': asset.id, 'source_url': asset.source_url, 'storage_url': asset.storage_url, 'status': asset.status}
            for asset in obj.assets.all()
        ]
