"""BookStack stack - ECS Fargate, RDS MySQL, EFS, ALB and Route53."""

import logging
from collections.abc import Callable

import aws_cdk as cdk
from aws_cdk import (
    Duration,
    RemovalPolicy,
    SecretValue,
    Stack,
    Tags,
    aws_certificatemanager as acm,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_efs as efs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_iam as iam,
    aws_logs as logs,
    aws_rds as rds,
    aws_route53 as route53,
    aws_route53_targets as route53_targets,
    aws_secretsmanager as secretsmanager,
    aws_ssm as ssm,
)
from constructs import Construct

from stacks.config import DeploymentProfile, Settings
from stacks.errors import TopologyError
from stacks.naming import SERVICE_NAME, ResolvedNames
from stacks.parameters import Lookups, lookup_values
from stacks.values import ResolvedAfterProvisioning

logger = logging.getLogger(__name__)

DB_PORT = 3306
CONFIG_VOLUME = "volume"
CONFIG_MOUNT_PATH = "/config"
PRIVATE_SUBNETS = ec2.SubnetSelection(subnet_type=ec2.SubnetType.PRIVATE_WITH_EGRESS)


class BookStack(Stack):
    """Stack for a single BookStack deployment environment."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        names: ResolvedNames,
        profile: DeploymentProfile,
        settings: Settings,
        **kwargs,
    ) -> None:
        """Initialize the BookStack stack.

        Args:
            scope: The CDK app scope.
            construct_id: Unique identifier for this stack.
            names: Names resolved for the environment.
            profile: Network exposure and health-check variant.
            settings: Deployment settings.
            **kwargs: Additional stack options.
        """
        super().__init__(scope, construct_id, **kwargs)

        self.names = names
        self.profile = profile
        self._settings = settings
        self._container_sealed = False

        Tags.of(self).add("Service", SERVICE_NAME)
        Tags.of(self).add("Environment", names.environment)

        lookups = lookup_values(self, settings.zone_name)

        # Order matters: every container mutation happens before the service.
        self._create_secret()
        self._create_network()
        self._create_task_definition(lookups)
        self._create_file_system()
        self._create_database()
        self._wire_container()
        self._create_service()
        self._create_load_balancer(lookups)

        cdk.CfnOutput(
            self,
            "RdsEndpoint",
            value=self.db_endpoint.token,
            description="RDS MySQL endpoint address",
        )
        cdk.CfnOutput(
            self,
            "LoadBalancerDNS",
            value=self.load_balancer.load_balancer_dns_name,
            description="Application Load Balancer DNS name",
        )
        cdk.CfnOutput(
            self,
            "EcsClusterId",
            value=self.cluster.cluster_name,
            description="ECS cluster name",
        )

        logger.info(
            "Declared %s for %s (%s exposure)",
            construct_id,
            names.hostname,
            profile.exposure.value,
        )

    def _create_secret(self) -> None:
        """Declare the database credential secret and the SSM password reference."""
        user = iam.User(self, "User")
        access_key = iam.AccessKey(self, "AccessKey", user=user)

        self.rds_secret = secretsmanager.Secret(
            self,
            "RdsSecret",
            secret_object_value={
                "username": SecretValue.unsafe_plain_text(self.names.database_username),
                "database": SecretValue.unsafe_plain_text(self.names.database_name),
                "password": access_key.secret_access_key,
            },
        )

        self.db_pass_parameter = ssm.StringParameter.from_secure_string_parameter_attributes(
            self,
            "DbPassParameter",
            parameter_name=self.names.secret_parameter_path,
            version=self._settings.db_password_parameter_version,
        )

    def _create_network(self) -> None:
        """Import the environment VPC and declare the shared security group."""
        self.vpc = ec2.Vpc.from_lookup(self, "Vpc", vpc_name=self.names.vpc_name)

        self.security_group = ec2.SecurityGroup(
            self,
            "SecurityGroup",
            vpc=self.vpc,
            description="Allow inter-component traffic for BookStack ECS Service",
            allow_all_outbound=True,
        )

        # Lets the ALB, tasks, EFS and RDS share one group
        self.security_group.add_ingress_rule(
            self.security_group,
            ec2.Port.all_traffic(),
            "Self referencing rule",
        )

        peer = ec2.Peer.ipv4(self.profile.ingress_cidr)
        self.security_group.add_ingress_rule(peer, ec2.Port.tcp(80), "Allow HTTP traffic")
        self.security_group.add_ingress_rule(peer, ec2.Port.tcp(443), "Allow HTTPS traffic")

    def _create_task_definition(self, lookups: Lookups) -> None:
        """Declare the Fargate task with the app container and log router."""
        self.task_definition = ecs.FargateTaskDefinition(
            self,
            "TaskDef",
            memory_limit_mib=512,
            cpu=256,
        )

        self.container = self.task_definition.add_container(
            f"{self.names.stack_id}Container",
            image=ecs.ContainerImage.from_registry(self._settings.image),
            port_mappings=[ecs.PortMapping(container_port=self.profile.container_port)],
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=f"{self.names.stack_id}-container",
                log_retention=logs.RetentionDays.ONE_DAY,
            ),
        )

        if self._settings.enable_log_router:
            self.task_definition.add_container(
                "LogRouter",
                image=ecs.ContainerImage.from_registry(self._settings.log_router_image),
                essential=False,
                logging=ecs.LogDrivers.aws_logs(
                    stream_prefix=f"{self.names.stack_id}-firelens",
                    log_retention=logs.RetentionDays.ONE_DAY,
                ),
            )

        self.task_definition.add_to_task_role_policy(
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["sts:AssumeRole"],
                resources=[f"arn:aws:iam::{lookups.account_number}:*"],
            )
        )

    def _create_file_system(self) -> None:
        """Declare the EFS file system and register it as a task volume."""
        self.file_system = efs.FileSystem(
            self,
            "BookStackEfs",
            vpc=self.vpc,
            allow_anonymous_access=True,
            encrypted=True,
            security_group=self.security_group,
            vpc_subnets=PRIVATE_SUBNETS,
        )

        self.task_definition.add_volume(
            name=CONFIG_VOLUME,
            efs_volume_configuration=ecs.EfsVolumeConfiguration(
                file_system_id=self.file_system.file_system_id,
                transit_encryption="ENABLED",
            ),
        )
        self._mutate_container(
            "mount",
            lambda: self.container.add_mount_points(
                ecs.MountPoint(
                    container_path=CONFIG_MOUNT_PATH,
                    source_volume=CONFIG_VOLUME,
                    read_only=False,
                )
            ),
        )

    def _create_database(self) -> None:
        """Declare the RDS MySQL instance."""
        self.database = rds.DatabaseInstance(
            self,
            "BookStackRds",
            engine=rds.DatabaseInstanceEngine.mysql(version=rds.MysqlEngineVersion.VER_8_0),
            credentials=rds.Credentials.from_secret(self.rds_secret),
            instance_type=ec2.InstanceType.of(
                ec2.InstanceClass.T4G,
                ec2.InstanceSize.MICRO,
            ),
            vpc=self.vpc,
            vpc_subnets=PRIVATE_SUBNETS,
            security_groups=[self.security_group],
            database_name=self.names.database_name,
            removal_policy=RemovalPolicy.DESTROY,
            deletion_protection=False,
            allocated_storage=20,
            storage_type=rds.StorageType.GP2,
            backup_retention=Duration.days(1),
            multi_az=False,
            auto_minor_version_upgrade=True,
        )

        self.db_endpoint = ResolvedAfterProvisioning(
            token=self.database.db_instance_endpoint_address,
            source="BookStackRds.Endpoint.Address",
        )

    def _wire_container(self) -> None:
        """Inject database settings and the password reference into the app container."""
        environment: dict[str, str | ResolvedAfterProvisioning] = {
            "DB_HOST": self.db_endpoint,
            "DB_PORT": str(DB_PORT),
            "DB_USER": self.names.database_username,
            "DB_DATABASE": self.names.database_name,
            "TZ": self._settings.timezone,
            "APP_URL": self.names.full_url,
        }
        for name, value in environment.items():
            self.add_environment(name, value)

        if self._settings.db_password_source == "secret":
            password = ecs.Secret.from_secrets_manager(self.rds_secret, "password")
        else:
            password = ecs.Secret.from_ssm_parameter(self.db_pass_parameter)
            self.task_definition.add_to_execution_role_policy(
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["ssm:GetParameter"],
                    resources=[
                        f"arn:aws:ssm:{self.region}:{self.account}:parameter"
                        f"{self.names.secret_parameter_path}"
                    ],
                )
            )
        self._mutate_container("DB_PASS", lambda: self.container.add_secret("DB_PASS", password))

    def add_environment(self, name: str, value: str | ResolvedAfterProvisioning) -> None:
        """Add an environment variable to the app container.

        Raises:
            TopologyError: If the service has already been declared.
        """
        self._mutate_container(name, lambda: self.container.add_environment(name, str(value)))

    def _mutate_container(self, what: str, apply: Callable[[], None]) -> None:
        if self._container_sealed:
            raise TopologyError(
                f"cannot change {what} on the app container after the service is declared"
            )
        apply()

    def _create_service(self) -> None:
        """Declare the ECS cluster and the Fargate service."""
        self.cluster = ecs.Cluster(
            self,
            "Cluster",
            vpc=self.vpc,
            cluster_name=f"{self.names.stack_id}-Cluster",
        )

        self._container_sealed = True
        self.service = ecs.FargateService(
            self,
            "BookStackService",
            cluster=self.cluster,
            task_definition=self.task_definition,
            desired_count=1,
            assign_public_ip=False,
            vpc_subnets=PRIVATE_SUBNETS,
            security_groups=[self.security_group],
            enable_execute_command=True,
        )

        # Mount targets must be live before tasks try to mount the volume
        self.service.node.add_dependency(self.file_system)
        self.service.node.add_dependency(self.database)

    def _create_load_balancer(self, lookups: Lookups) -> None:
        """Declare the ALB, its listeners, the certificate and the DNS record."""
        self.load_balancer = elbv2.ApplicationLoadBalancer(
            self,
            "Alb",
            vpc=self.vpc,
            internet_facing=True,
            security_group=self.security_group,
        )

        self.hosted_zone = route53.HostedZone.from_hosted_zone_attributes(
            self,
            "HostedZone",
            hosted_zone_id=lookups.hosted_zone_id,
            zone_name=self._settings.zone_name,
        )

        certificate = acm.Certificate(
            self,
            "AlbCert",
            domain_name=self.names.hostname,
            validation=acm.CertificateValidation.from_dns(self.hosted_zone),
        )

        self.http_listener = self.load_balancer.add_listener(
            "HttpListener",
            port=80,
            open=False,
        )
        self.http_listener.add_action(
            "Redirect",
            action=elbv2.ListenerAction.redirect(
                protocol="HTTPS",
                port="443",
                permanent=True,
            ),
        )

        self.https_listener = self.load_balancer.add_listener(
            "HttpsListener",
            port=443,
            certificates=[elbv2.ListenerCertificate.from_certificate_manager(certificate)],
            open=False,
        )
        self.https_listener.add_targets(
            "Ecs",
            port=self.profile.container_port,
            protocol=elbv2.ApplicationProtocol.HTTP,
            health_check=elbv2.HealthCheck(
                path=self.profile.health_check_path,
                interval=Duration.seconds(10),
                timeout=Duration.seconds(3),
                healthy_http_codes=self.profile.healthy_http_codes,
            ),
            targets=[self.service],
        )

        self.record = route53.ARecord(
            self,
            "ARecord",
            zone=self.hosted_zone,
            target=route53.RecordTarget.from_alias(
                route53_targets.LoadBalancerTarget(self.load_balancer)
            ),
            record_name=self.names.hostname,
        )
