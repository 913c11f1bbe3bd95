"""Platform Stack Synthesis Tests"""
import json

import aws_cdk as cdk
import pytest
from aws_cdk import aws_autoscaling as autoscaling
from aws_cdk.assertions import Match, Template

from infra.stacks.platform_stack import PlatformStack
from infra.verification import logical_id_of
from src.domain.topology import InvalidCapacityError
from src.infrastructure.config import Settings


def lid(stack: PlatformStack, logical_id: str) -> str:
    """トポロジの論理IDからテンプレート上の論理IDを取得"""
    return logical_id_of(stack.resources.construct(logical_id).node.default_child)


class TestIdentity:
    """Cognito + API Gateway 認可のテスト"""

    def test_user_pool(self, platform_template):
        """正常: メールでサインインしコードで確認するセルフサインアップ"""
        platform_template.has_resource_properties("AWS::Cognito::UserPool", {
            "UsernameAttributes": ["email"],
            "AutoVerifiedAttributes": ["email"],
            "AdminCreateUserConfig": {"AllowAdminCreateUserOnly": False},
            "VerificationMessageTemplate": Match.object_like({
                "DefaultEmailOption": "CONFIRM_WITH_CODE",
            }),
        })

    def test_action_route_uses_cognito_authorizer(self, platform_stack, platform_template):
        """正常: POST /action は User Pool を参照する Authorizer で保護される"""
        # Arrange
        authorizer_id = logical_id_of(platform_stack.resources.construct("APIAuthorizer").node.default_child)

        # Assert
        platform_template.has_resource_properties("AWS::ApiGateway::Authorizer", {
            "Type": "COGNITO_USER_POOLS",
            "ProviderARNs": [{"Fn::GetAtt": [lid(platform_stack, "UserPool"), "Arn"]}],
        })
        platform_template.has_resource_properties("AWS::ApiGateway::Resource", {"PathPart": "action"})
        platform_template.has_resource_properties("AWS::ApiGateway::Method", {
            "HttpMethod": "POST",
            "AuthorizationType": "COGNITO_USER_POOLS",
            "AuthorizerId": {"Ref": authorizer_id},
        })

    def test_api_endpoint_output(self, platform_template):
        """正常: API のベース URL を出力する"""
        platform_template.has_output("APIEndpoint", {"Value": Match.any_value()})


class TestFunction:
    """Lambda のテスト"""

    def test_environment_bindings(self, platform_stack, platform_template):
        """正常: 5 つのバインディングが環境変数として渡る"""
        platform_template.has_resource_properties("AWS::Lambda::Function", {
            "Runtime": "python3.12",
            "Handler": "handler.lambda_handler",
            "Environment": {
                "Variables": {
                    "DYNAMODB_TABLE": {"Ref": lid(platform_stack, "MetadataTable")},
                    "S3_BUCKET": {"Ref": lid(platform_stack, "FilesBucket")},
                    "SNS_TOPIC_ARN": {"Ref": lid(platform_stack, "NotificationsTopic")},
                    "SQS_QUEUE_URL": {"Ref": lid(platform_stack, "MessagesQueue")},
                    "SECRET_ID": {"Ref": lid(platform_stack, "MySecret")},
                },
            },
            "VpcConfig": Match.object_like({
                "SecurityGroupIds": [
                    {"Fn::GetAtt": [lid(platform_stack, "EC2SecurityGroup"), "GroupId"]},
                ],
            }),
        })

    def test_explicit_least_privilege_statement(self, platform_template):
        """正常: 明示的な最小権限ステートメントが付与される"""
        # Act
        statements = [
            statement
            for policy in platform_template.find_resources("AWS::IAM::Policy").values()
            for statement in policy["Properties"]["PolicyDocument"]["Statement"]
            if statement.get("Sid") == "ExplicitLeastPrivilege"
        ]

        # Assert
        assert len(statements) == 1
        assert statements[0]["Effect"] == "Allow"
        assert sorted(statements[0]["Action"]) == sorted([
            "dynamodb:PutItem",
            "dynamodb:GetItem",
            "s3:PutObject",
            "s3:GetObject",
            "sns:Publish",
            "sqs:SendMessage",
            "secretsmanager:GetSecretValue",
        ])
        assert len(statements[0]["Resource"]) == 5

    def test_tagged_with_api_service(self, platform_template):
        """正常: api サービスとしてバージョン付きでタグ付けされる"""
        platform_template.has_resource_properties("AWS::Lambda::Function", {
            "Tags": Match.array_with([
                {"Key": "Service", "Value": "api"},
                {"Key": "ServiceVersion", "Value": "1.0.0"},
            ]),
        })


class TestStorage:
    """データ・メッセージング・シークレットのテスト"""

    def test_table(self, platform_template):
        """正常: 文字列 id をパーティションキーとする破棄可能なテーブル"""
        platform_template.has_resource("AWS::DynamoDB::Table", {
            "Properties": Match.object_like({
                "KeySchema": [{"AttributeName": "id", "KeyType": "HASH"}],
                "AttributeDefinitions": [{"AttributeName": "id", "AttributeType": "S"}],
            }),
            "DeletionPolicy": "Delete",
            "UpdateReplacePolicy": "Delete",
        })

    def test_bucket_auto_deletes_objects(self, platform_stack, platform_template):
        """正常: バケットは破棄可能でオブジェクトを自動削除する"""
        platform_template.has_resource("AWS::S3::Bucket", {"DeletionPolicy": "Delete"})
        platform_template.has_resource_properties("Custom::S3AutoDeleteObjects", {
            "BucketName": {"Ref": lid(platform_stack, "FilesBucket")},
        })

    def test_messaging_defaults(self, platform_template):
        """正常: トピックとキューが 1 つずつ"""
        platform_template.resource_count_is("AWS::SNS::Topic", 1)
        platform_template.resource_count_is("AWS::SQS::Queue", 1)

    def test_secret(self, platform_template):
        """正常: username 固定でパスワードを生成するシークレット"""
        platform_template.has_resource_properties("AWS::SecretsManager::Secret", {
            "Name": "MySecret",
            "GenerateSecretString": {
                "SecretStringTemplate": json.dumps({"username": "user"}),
                "GenerateStringKey": "password",
            },
        })


class TestNetwork:
    """VPC とピアリングのテスト"""

    def test_two_vpcs_with_disjoint_cidrs(self, platform_template):
        """正常: 重ならない CIDR の VPC が 2 つ"""
        platform_template.resource_count_is("AWS::EC2::VPC", 2)
        platform_template.has_resource_properties("AWS::EC2::VPC", {"CidrBlock": "10.0.0.0/16"})
        platform_template.has_resource_properties("AWS::EC2::VPC", {"CidrBlock": "10.1.0.0/16"})

    def test_peering_connection(self, platform_stack, platform_template):
        """正常: 2 つの VPC をピアリング"""
        platform_template.has_resource_properties("AWS::EC2::VPCPeeringConnection", {
            "VpcId": {"Ref": lid(platform_stack, "MyVpc")},
            "PeerVpcId": {"Ref": lid(platform_stack, "PeerVpc")},
        })

    def test_one_route_per_private_subnet_per_direction(self, platform_stack, platform_template):
        """正常: 方向ごとにプライベートサブネット数と同じ本数のルート"""
        # Arrange
        vpc = platform_stack.resources.construct("MyVpc")
        peer = platform_stack.resources.construct("PeerVpc")

        # Act
        to_peer = platform_template.find_resources("AWS::EC2::Route", {
            "Properties": {
                "VpcPeeringConnectionId": Match.any_value(),
                "DestinationCidrBlock": {"Fn::GetAtt": [lid(platform_stack, "PeerVpc"), "CidrBlock"]},
            },
        })
        from_peer = platform_template.find_resources("AWS::EC2::Route", {
            "Properties": {
                "VpcPeeringConnectionId": Match.any_value(),
                "DestinationCidrBlock": {"Fn::GetAtt": [lid(platform_stack, "MyVpc"), "CidrBlock"]},
            },
        })

        # Assert
        assert len(to_peer) == len(vpc.private_subnets) == 2
        assert len(from_peer) == len(peer.private_subnets) == 2

    def test_web_ingress(self, platform_template):
        """正常: セキュリティグループは 80 と 443 を許可"""
        platform_template.has_resource_properties("AWS::EC2::SecurityGroup", {
            "GroupDescription": "SecurityGroup for ec2 Instances",
            "SecurityGroupIngress": Match.array_with([
                Match.object_like({"FromPort": 80, "ToPort": 80, "CidrIp": "0.0.0.0/0"}),
                Match.object_like({"FromPort": 443, "ToPort": 443, "CidrIp": "0.0.0.0/0"}),
            ]),
        })


class TestFleet:
    """ALB + ASG のテスト"""

    def test_fleet_capacity(self, platform_template):
        """正常: min 1 / max 3 の Auto Scaling Group"""
        platform_template.has_resource_properties("AWS::AutoScaling::AutoScalingGroup", {
            "MinSize": "1",
            "MaxSize": "3",
        })
        assert "t3.micro" in json.dumps(platform_template.to_json())

    def test_no_scaling_trigger_by_default(self, platform_template):
        """正常: スケーリングポリシーはデフォルトで作成しない"""
        platform_template.resource_count_is("AWS::AutoScaling::ScalingPolicy", 0)

    def test_internet_facing_load_balancer(self, platform_template):
        """正常: ポート 80 のリスナーを持つインターネット向け ALB"""
        platform_template.has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
            "Scheme": "internet-facing",
            "Type": "application",
        })
        platform_template.has_resource_properties("AWS::ElasticLoadBalancingV2::Listener", {
            "Port": 80,
            "Protocol": "HTTP",
        })
        platform_template.has_resource_properties("AWS::ElasticLoadBalancingV2::TargetGroup", {
            "Port": 80,
            "TargetType": "instance",
        })

    def test_tagged_with_fleet_service(self, platform_template):
        """正常: fleet サービスとしてタグ付けされる"""
        platform_template.has_resource_properties("AWS::ElasticLoadBalancingV2::LoadBalancer", {
            "Tags": Match.array_with([
                {"Key": "Service", "Value": "fleet"},
                {"Key": "ServiceVersion", "Value": "1.0.0"},
            ]),
        })

    def test_cpu_scaling_when_configured(self, stack_factory):
        """正常: CPU ターゲットを設定するとターゲット追跡ポリシーを作成"""
        stack = stack_factory(fleet_target_cpu_utilization=60)

        Template.from_stack(stack).has_resource_properties("AWS::AutoScaling::ScalingPolicy", {
            "PolicyType": "TargetTrackingScaling",
            "TargetTrackingConfiguration": Match.object_like({"TargetValue": 60}),
        })

    def test_without_fleet_ingress(self, stack_factory):
        """正常: フリートを無効にすると ALB と ASG は作成されない"""
        template = Template.from_stack(stack_factory(enable_fleet_ingress=False))

        template.resource_count_is("AWS::AutoScaling::AutoScalingGroup", 0)
        template.resource_count_is("AWS::ElasticLoadBalancingV2::LoadBalancer", 0)

    def test_minimum_exceeds_maximum(self):
        """異常: min > max はプロビジョニング前に拒否される"""
        # Arrange
        app = cdk.App()
        settings = Settings(_env_file=None, fleet_min_capacity=4, fleet_max_capacity=3)

        # Act
        with pytest.raises(InvalidCapacityError):
            PlatformStack(app, "InvalidStack", settings=settings)

        # Assert
        groups = [
            construct
            for construct in app.node.find_all()
            if isinstance(construct, autoscaling.AutoScalingGroup)
        ]
        assert groups == []


def test_api_url_is_exposed(platform_stack):
    """正常: スタックから API の URL を参照できる"""
    assert cdk.Token.is_unresolved(platform_stack.api_url)
